"""
In-memory presence tracking for connected chat participants.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import ValidationError


@dataclass
class Participant:
    """A live connection's association with a user"""

    connection_id: str
    user_id: int
    username: str
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.user_id,
            "username": self.username,
            "socketId": self.connection_id,
            "joinedAt": self.joined_at.isoformat(),
        }

    def identity(self):
        """Payload used by join/leave/typing events"""
        return {"id": self.user_id, "username": self.username}


class PresenceRegistry:
    """
    Connection id -> Participant map for this process.

    Entries are added on join and removed on disconnect. Each mutation is a
    single dict operation, so handlers running concurrently never observe a
    half-applied change. Nothing here is persisted.
    """

    def __init__(self):
        self._participants = {}

    def register(self, connection_id, user):
        """Record a joined connection; `user` is a stored user row"""
        participant = Participant(
            connection_id=connection_id,
            user_id=user["id"],
            username=user["username"]
        )
        self._participants[connection_id] = participant
        return participant

    def unregister(self, connection_id):
        """Drop a connection; returns None if it never completed a join"""
        return self._participants.pop(connection_id, None)

    def get(self, connection_id):
        return self._participants.get(connection_id)

    def snapshot(self):
        return list(self._participants.values())

    def __len__(self):
        return len(self._participants)

    def __contains__(self, connection_id):
        return connection_id in self._participants


MAX_USERNAME_LENGTH = 80


def clean_username(username):
    """Validate a join username; returns it stripped"""
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("Username is required.")
    username = username.strip()
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters.")
    return username
