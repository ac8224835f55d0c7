"""
User identity model for the chat room.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime
from .database_config import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(80), unique=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User {self.username}>"
