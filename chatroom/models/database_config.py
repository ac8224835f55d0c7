"""
Database configuration and session management for the chat room server.
"""

import os
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from chatroom.utils.config import get_database_url


logger = logging.getLogger(__name__)


def build_engine(database_url):
    """Create an engine suited to the configured backend"""
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside a single connection
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            options["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **options)

    return create_engine(
        database_url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=300
    )


# Database setup
database_url = get_database_url()
engine = build_engine(database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db():
    """Initialize database tables"""
    # Register every mapped class on Base.metadata before creating tables
    from chatroom.models import user_models, message_models  # noqa: F401

    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_dir = os.path.dirname(database_url[len("sqlite:///"):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


@contextmanager
def get_db():
    """Context manager for database sessions with automatic commit/rollback"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
