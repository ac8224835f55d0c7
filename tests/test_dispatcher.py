from chatroom.websockets.dispatcher import BroadcastDispatcher


class RecordingSocketIO:
    """Stands in for the SocketIO server, optionally failing for some sids"""

    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)

    def emit(self, event, payload, to=None, namespace=None):
        if to in self.failing:
            raise ConnectionError(f"{to} is gone")
        self.sent.append((event, payload, to))


def make_dispatcher(*sids, failing=()):
    sio = RecordingSocketIO(failing)
    dispatcher = BroadcastDispatcher(sio)
    for sid in sids:
        dispatcher.attach(sid)
    return dispatcher, sio


class TestBroadcastDispatcher:
    """Test fan-out delivery modes"""

    def test_broadcast_reaches_everyone(self):
        dispatcher, sio = make_dispatcher('a', 'b', 'c')

        delivered = dispatcher.broadcast('newMessage', {'id': 1})

        assert delivered == 3
        assert sorted(to for _, _, to in sio.sent) == ['a', 'b', 'c']

    def test_broadcast_others_skips_origin(self):
        dispatcher, sio = make_dispatcher('a', 'b', 'c')

        dispatcher.broadcast_others('userTyping', {'username': 'alice'}, 'a')

        assert sorted(to for _, _, to in sio.sent) == ['b', 'c']

    def test_reply_targets_origin_only(self):
        dispatcher, sio = make_dispatcher('a', 'b')

        assert dispatcher.reply('joined', {'id': 1}, 'b') is True
        assert sio.sent == [('joined', {'id': 1}, 'b')]

    def test_reply_to_departed_connection_is_dropped(self):
        dispatcher, sio = make_dispatcher('a')
        dispatcher.detach('a')

        assert dispatcher.reply('messageHistory', [], 'a') is False
        assert sio.sent == []

    def test_failed_sink_does_not_affect_others(self):
        dispatcher, sio = make_dispatcher('a', 'b', 'c', failing=['b'])

        delivered = dispatcher.broadcast('messageReaction', {'messageId': 1})

        assert delivered == 2
        assert sorted(to for _, _, to in sio.sent) == ['a', 'c']

    def test_detach_unknown_sid_is_noop(self):
        dispatcher, _ = make_dispatcher('a')
        dispatcher.detach('zzz')
        assert dispatcher.sinks() == ['a']
