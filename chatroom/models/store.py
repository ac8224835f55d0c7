"""
Durable store adapter for the chat room.

Runs every query the chat core needs and hands back plain dict rows, so no
ORM instance ever outlives the session that loaded it.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from chatroom.services.errors import StorageError
from .database_config import get_db
from .user_models import User
from .message_models import Message, MessageReaction, utcnow


logger = logging.getLogger(__name__)


def isoformat(value):
    """Serialize a stored timestamp as UTC ISO-8601"""
    if value is None:
        return None
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def row_to_dict(instance):
    """Turn a mapped instance into a JSON-ready row"""
    row = {}
    for column in instance.__table__.columns:
        value = getattr(instance, column.key)
        if isinstance(value, datetime):
            value = isoformat(value)
        row[column.key] = value
    return row


class ChatStore:
    """Parameterized queries over users, messages and reactions"""

    def __init__(self, session_scope=get_db):
        self.session_scope = session_scope

    @contextmanager
    def _session(self, action):
        try:
            with self.session_scope() as db:
                yield db
        except SQLAlchemyError as e:
            logger.error(f"Storage error while {action}: {e}")
            raise StorageError() from e

    # Users

    def find_or_create_user(self, username):
        try:
            with self._session("creating user") as db:
                user = db.query(User).filter(User.username == username).first()
                if user is None:
                    user = User(username=username)
                    db.add(user)
                    db.flush()
                    logger.info(f"New user created: {username} (id: {user.id})")
                return row_to_dict(user)
        except StorageError as e:
            if not isinstance(e.__cause__, IntegrityError):
                raise

        # A concurrent join created the same username first
        with self._session("loading user") as db:
            user = db.query(User).filter(User.username == username).one()
            return row_to_dict(user)

    # Messages

    def get_message(self, message_id):
        with self._session("loading message") as db:
            message = db.get(Message, message_id)
            return row_to_dict(message) if message is not None else None

    def insert_message(self, user_id, content, type="text", **payload):
        with self._session("saving message") as db:
            message = Message(user_id=user_id, content=content, type=type, **payload)
            db.add(message)
            db.flush()
            return row_to_dict(message)

    def update_message_content(self, message_id, content):
        with self._session("editing message") as db:
            message = db.get(Message, message_id)
            if message is None:
                return None
            message.content = content
            message.is_edited = True
            message.updated_at = utcnow()
            db.flush()
            return row_to_dict(message)

    def mark_message_deleted(self, message_id):
        with self._session("deleting message") as db:
            message = db.get(Message, message_id)
            if message is None:
                return None
            message.is_deleted = True
            db.flush()
            return row_to_dict(message)

    def recent_messages(self, limit):
        """Most recent messages joined with their author, newest first"""
        with self._session("loading message history") as db:
            rows = (
                db.query(Message, User.username)
                .join(User, Message.user_id == User.id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
                .all()
            )
            return [dict(row_to_dict(message), username=username) for message, username in rows]

    def parent_summaries(self, message_ids):
        """Bulk-load the summary shown above a reply"""
        message_ids = list(message_ids)
        if not message_ids:
            return []

        with self._session("loading parent messages") as db:
            rows = (
                db.query(Message.id, Message.content, Message.type, Message.user_id, User.username)
                .join(User, Message.user_id == User.id)
                .filter(Message.id.in_(message_ids))
                .all()
            )
            return [
                {
                    "id": row.id,
                    "content": row.content,
                    "type": row.type,
                    "user_id": row.user_id,
                    "username": row.username,
                }
                for row in rows
            ]

    # Reactions

    def reactions_for(self, message_ids):
        """Bulk-load reactions for a set of messages"""
        message_ids = list(message_ids)
        if not message_ids:
            return []

        with self._session("loading reactions") as db:
            rows = (
                db.query(MessageReaction.message_id, MessageReaction.emoji, User.username)
                .join(User, MessageReaction.user_id == User.id)
                .filter(MessageReaction.message_id.in_(message_ids))
                .order_by(MessageReaction.id)
                .all()
            )
            return [
                {"message_id": row.message_id, "emoji": row.emoji, "username": row.username}
                for row in rows
            ]

    def toggle_reaction(self, message_id, user_id, emoji):
        """Add the reaction if absent, remove it if present. Returns True when added."""
        with self._session("toggling reaction") as db:
            existing = (
                db.query(MessageReaction)
                .filter(
                    MessageReaction.message_id == message_id,
                    MessageReaction.user_id == user_id,
                    MessageReaction.emoji == emoji
                )
                .first()
            )
            if existing is not None:
                db.delete(existing)
                return False

            db.add(MessageReaction(message_id=message_id, user_id=user_id, emoji=emoji))
            db.flush()
            return True
