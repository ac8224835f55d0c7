"""
Database models for the chat room server
"""

from .database_config import Base, engine, SessionLocal, init_db, get_db
from .user_models import User
from .message_models import Message, MessageReaction
from .store import ChatStore

__all__ = [
    'Base', 'engine', 'SessionLocal', 'init_db', 'get_db',
    'User', 'Message', 'MessageReaction', 'ChatStore'
]
