"""
Configuration module for the chat room server.
Handles environment loading, app configuration and logging setup.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


DEFAULT_DATABASE_URL = "sqlite:///database/chatroom.db"

# Generic file uploads are limited to this allow-list
ALLOWED_FILE_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
)


def get_database_url():
    """Get the database URL with Heroku-style postgres:// URLs fixed for SQLAlchemy"""
    database_url = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def _int_env(name, default):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def configure_logging(level=None):
    """Set up root logging once for the whole process"""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


def init_app(app):
    """Initialize Flask app configuration from the environment"""

    configure_logging()

    # Basic Flask configuration
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
    app.config["DATABASE_URL"] = get_database_url()

    # Socket.IO transport settings
    app.config["CORS_ALLOWED_ORIGINS"] = os.getenv("CORS_ALLOWED_ORIGINS", "*")
    app.config["SOCKETIO_ASYNC_MODE"] = os.getenv("SOCKETIO_ASYNC_MODE", "threading")
    app.config["PING_INTERVAL"] = _int_env("PING_INTERVAL", 30)
    app.config["PING_TIMEOUT"] = _int_env("PING_TIMEOUT", 120)

    # Chat behaviour
    app.config["HISTORY_LIMIT"] = min(_int_env("HISTORY_LIMIT", 50), 50)

    # Uploads
    app.config["UPLOAD_FOLDER"] = os.path.abspath(os.getenv("UPLOAD_FOLDER", "uploads"))
    app.config["MAX_FILE_SIZE"] = _int_env("MAX_FILE_SIZE", 10 * 1024 * 1024)
    app.config["ALLOWED_FILE_MIME_TYPES"] = ALLOWED_FILE_MIME_TYPES

    app.config["PORT"] = _int_env("PORT", 5000)

    logging.getLogger(__name__).info(
        f"Configuration loaded (async_mode: {app.config['SOCKETIO_ASYNC_MODE']}, "
        f"history limit: {app.config['HISTORY_LIMIT']})"
    )
    return app.config
