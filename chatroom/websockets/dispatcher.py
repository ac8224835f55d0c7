"""
Fan-out of chat events to connected Socket.IO clients.
"""

import logging


logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    """
    Publishes events over the set of currently connected sinks.

    Sends are fire-and-forget: nothing waits for client acknowledgement and
    a failed send to one sink is logged without affecting the others.
    """

    def __init__(self, socketio, namespace="/"):
        self.socketio = socketio
        self.namespace = namespace
        self._sinks = {}

    def attach(self, sid):
        self._sinks[sid] = True

    def detach(self, sid):
        self._sinks.pop(sid, None)

    def is_connected(self, sid):
        return sid in self._sinks

    def sinks(self):
        return list(self._sinks)

    def _send(self, event, payload, sid):
        try:
            self.socketio.emit(event, payload, to=sid, namespace=self.namespace)
            return True
        except Exception as e:
            logger.warning(f"Dropping '{event}' for {sid}: {e}")
            return False

    def broadcast(self, event, payload):
        """Deliver to every connected client, originator included"""
        return sum(self._send(event, payload, sid) for sid in self.sinks())

    def broadcast_others(self, event, payload, origin):
        """Deliver to every connected client except the originator"""
        return sum(self._send(event, payload, sid) for sid in self.sinks() if sid != origin)

    def reply(self, event, payload, origin):
        """Deliver only to the originating connection, if it is still here"""
        if not self.is_connected(origin):
            logger.debug(f"Originator {origin} is gone, dropping '{event}'")
            return False
        return self._send(event, payload, origin)
