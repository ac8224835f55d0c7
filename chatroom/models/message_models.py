"""
Chat message and reaction models for the chat room.
"""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, Float, ForeignKey, UniqueConstraint,
    CheckConstraint
)
from .database_config import Base


MESSAGE_TYPES = ("text", "audio", "file")


def utcnow():
    return datetime.now(timezone.utc)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="text")  # 'text', 'audio' or 'file'
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)
    is_edited = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    parent_message_id = Column(Integer, ForeignKey("messages.id"), nullable=True)

    # Audio payload
    audio_url = Column(String(500), nullable=True)
    audio_duration = Column(Float, nullable=True)

    # File payload
    file_url = Column(String(500), nullable=True)
    file_name = Column(String(255), nullable=True)
    file_type = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    is_image = Column(Boolean, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "type IN (" + ", ".join(f"'{t}'" for t in MESSAGE_TYPES) + ")",
            name="ck_message_type"
        ),
    )

    def __repr__(self):
        return f"<Message {self.id} ({self.type}) from user {self.user_id}>"


class MessageReaction(Base):
    __tablename__ = "message_reactions"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    emoji = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # One user can only react with each emoji once per message
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", "emoji", name="uq_message_user_emoji"),
    )

    def __repr__(self):
        return f"<MessageReaction {self.emoji} by user {self.user_id} on message {self.message_id}>"
