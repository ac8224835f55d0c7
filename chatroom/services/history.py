"""
Message history reconstruction for newly joined participants.
"""

import logging
from collections import defaultdict

from .errors import StorageError, DegradedRead


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryReconstructor:
    """
    Loads the most recent messages oldest-first and enriches them.

    Parents and reactions are each fetched with one bulk query over the
    loaded id set. If either enrichment fails the history is still
    delivered, just without that enrichment. A failure loading the messages
    themselves propagates as StorageError.
    """

    def __init__(self, store, limit=DEFAULT_HISTORY_LIMIT):
        self.store = store
        # Never deliver more than the default window
        self.limit = max(1, min(int(limit), DEFAULT_HISTORY_LIMIT))

    def load(self):
        rows = self.store.recent_messages(self.limit)
        # Stored newest-first, delivered oldest-first
        messages = [dict(row) for row in reversed(rows)]

        self._attach_parents(messages)
        self._attach_reactions(messages)
        return messages

    def _attach_parents(self, messages):
        parent_ids = {m["parent_message_id"] for m in messages if m.get("parent_message_id")}
        if not parent_ids:
            return

        try:
            parents = self.store.parent_summaries(parent_ids)
        except StorageError as e:
            self._absorb(DegradedRead("parent messages", e.__cause__ or e))
            return

        parents_by_id = {parent["id"]: parent for parent in parents}
        for message in messages:
            parent = parents_by_id.get(message.get("parent_message_id"))
            if parent is not None:
                message["parentMessage"] = parent

    def _attach_reactions(self, messages):
        reactions_by_message = defaultdict(list)
        if messages:
            try:
                reactions = self.store.reactions_for([m["id"] for m in messages])
            except StorageError as e:
                self._absorb(DegradedRead("reactions", e.__cause__ or e))
                reactions = []

            for reaction in reactions:
                reactions_by_message[reaction["message_id"]].append(reaction)

        for message in messages:
            message["reactions"] = reactions_by_message.get(message["id"], [])

    def _absorb(self, error):
        logger.warning(f"Degraded history read: {error.message}")
