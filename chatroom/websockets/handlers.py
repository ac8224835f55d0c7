"""
Socket.IO event handlers for the chat room.
Handles joins, presence, messaging, edits, deletes, reactions and typing.
"""

import logging
from datetime import datetime, timezone
from flask import request
from flask_socketio import SocketIO

from chatroom.models.store import ChatStore
from chatroom.services.errors import ChatError, StorageError
from chatroom.services.history import HistoryReconstructor
from chatroom.services.messages import MessageService
from chatroom.services.presence import PresenceRegistry, clean_username
from chatroom.websockets.dispatcher import BroadcastDispatcher


logger = logging.getLogger(__name__)

# Built by init_socketio and shared by every handler in this process
socketio = None
chat_store = None
presence = None
dispatcher = None
message_service = None
history = None


def init_socketio(app, store=None):
    """Initialize Socket.IO and the chat services with the Flask app"""
    global socketio, chat_store, presence, dispatcher, message_service, history

    origins = app.config.get("CORS_ALLOWED_ORIGINS", "*")
    if origins != "*":
        origins = [origin.strip() for origin in origins.split(",") if origin.strip()]

    socketio = SocketIO(
        app,
        cors_allowed_origins=origins,
        ping_interval=app.config.get("PING_INTERVAL", 30),  # Keep-alive probe interval
        ping_timeout=app.config.get("PING_TIMEOUT", 120),  # Inactivity before the peer is dropped
        max_http_buffer_size=1_000_000,
        engineio_logger=False,
        logger=False,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "threading")
    )

    chat_store = store or ChatStore()
    presence = PresenceRegistry()
    dispatcher = BroadcastDispatcher(socketio)
    message_service = MessageService(chat_store)
    history = HistoryReconstructor(chat_store, limit=app.config.get("HISTORY_LIMIT", 50))

    # Register event handlers
    register_handlers()

    return socketio


def utc_timestamp():
    return datetime.now(timezone.utc).isoformat()


def payload_dict(data):
    return data if isinstance(data, dict) else {}


def roster():
    return [participant.to_dict() for participant in presence.snapshot()]


def failure_ack(error, fallback_message, notify_sid=None):
    """
    Build the acknowledgement for a failed operation.

    Client-facing errors keep their own message; storage and unexpected
    errors are reported with the operation's generic message. With
    ``notify_sid`` the same payload also goes out as a direct 'error' event.
    """
    if isinstance(error, ChatError) and not isinstance(error, StorageError):
        ack = error.to_ack()
    else:
        if not isinstance(error, StorageError):
            logger.exception(f"Unexpected error: {error}")
        ack = {"message": fallback_message}

    if notify_sid is not None:
        dispatcher.reply("error", ack, notify_sid)
    return ack


def register_handlers():
    """Register all Socket.IO event handlers"""

    @socketio.on("connect")
    def handle_connect(auth=None):
        """Handle client connection"""
        dispatcher.attach(request.sid)
        logger.info(f"[CONNECTION] Client connected: {request.sid}")


    @socketio.on("disconnect")
    def handle_disconnect(reason=None):
        """Handle client disconnection and clean up presence"""
        sid = request.sid
        dispatcher.detach(sid)
        participant = presence.unregister(sid)
        logger.info(f"[DISCONNECTION] Client disconnected: {sid} (reason: {reason})")

        # Connections that never joined leave no presence behind
        if participant is None:
            return

        dispatcher.broadcast("userLeft", dict(participant.identity(), timestamp=utc_timestamp()))
        dispatcher.broadcast("activeUsers", roster())


    @socketio.on_error_default
    def default_error_handler(e):
        """Default error handler for all events"""
        logger.error(f"[SOCKET ERROR] Event: {request.event} - {e}")
        return False


    @socketio.on("join")
    def handle_join(username=None):
        """Look up or create the user, register presence and send history"""
        sid = request.sid
        try:
            username = clean_username(username)
            user = chat_store.find_or_create_user(username)
        except Exception as e:
            return failure_ack(e, "Failed to join the chat. Please try again.", sid)

        participant = presence.register(sid, user)
        logger.info(f"User {participant.username} joined with socket id {sid}")

        dispatcher.reply("joined", user, sid)
        dispatcher.broadcast("activeUsers", roster())

        # Presence stands even if history cannot be loaded
        try:
            messages = history.load()
        except Exception as e:
            failure_ack(e, "Failed to load message history. Please try again.", sid)
        else:
            logger.info(f"Sending {len(messages)} messages to {participant.username}")
            dispatcher.reply("messageHistory", messages, sid)

        dispatcher.broadcast_others(
            "userJoined",
            dict(participant.identity(), timestamp=utc_timestamp()),
            sid
        )
        return None


    @socketio.on("sendMessage")
    def handle_send_message(data=None):
        """Create a text message"""
        data = payload_dict(data)
        try:
            message = message_service.create_text(presence.get(request.sid), data.get("content"))
        except Exception as e:
            return failure_ack(e, "Failed to send message. Please try again.")

        dispatcher.broadcast("newMessage", message)
        return None


    @socketio.on("sendReplyMessage")
    def handle_send_reply_message(data=None):
        """Create a reply to an existing message"""
        data = payload_dict(data)
        try:
            message = message_service.create_reply(
                presence.get(request.sid),
                data.get("content"),
                data.get("parentMessageId")
            )
        except Exception as e:
            return failure_ack(e, "Failed to send reply. Please try again.")

        dispatcher.broadcast("newMessage", message)
        return None


    @socketio.on("sendAudioMessage")
    def handle_send_audio_message(data=None):
        """Create an audio message from an uploaded clip"""
        data = payload_dict(data)
        try:
            message = message_service.create_audio(
                presence.get(request.sid),
                data.get("audioUrl"),
                data.get("duration")
            )
        except Exception as e:
            return failure_ack(e, "Failed to send audio message. Please try again.")

        dispatcher.broadcast("newMessage", message)
        return None


    @socketio.on("sendFileMessage")
    def handle_send_file_message(data=None):
        """Create a file message from an uploaded file"""
        data = payload_dict(data)
        try:
            message = message_service.create_file(
                presence.get(request.sid),
                data.get("fileUrl"),
                file_name=data.get("fileName"),
                file_type=data.get("fileType"),
                file_size=data.get("fileSize"),
                is_image=data.get("isImage", False),
                caption=data.get("caption")
            )
        except Exception as e:
            return failure_ack(e, "Failed to send file. Please try again.")

        dispatcher.broadcast("newMessage", message)
        return None


    @socketio.on("editMessage")
    def handle_edit_message(data=None):
        """Edit one of the sender's own messages"""
        data = payload_dict(data)
        try:
            message = message_service.edit(
                presence.get(request.sid),
                data.get("messageId"),
                data.get("content")
            )
        except Exception as e:
            return failure_ack(e, "Failed to edit message. Please try again.", request.sid)

        dispatcher.broadcast("messageUpdated", message)
        return None


    @socketio.on("deleteMessage")
    def handle_delete_message(data=None):
        """Soft-delete one of the sender's own messages"""
        data = payload_dict(data)
        try:
            message = message_service.delete(presence.get(request.sid), data.get("messageId"))
        except Exception as e:
            return failure_ack(e, "Failed to delete message. Please try again.", request.sid)

        dispatcher.broadcast("messageDeleted", message)
        return None


    @socketio.on("addReaction")
    def handle_add_reaction(data=None):
        """Toggle an emoji reaction on a message"""
        data = payload_dict(data)
        try:
            reaction = message_service.toggle_reaction(
                presence.get(request.sid),
                data.get("messageId"),
                data.get("emoji")
            )
        except Exception as e:
            return failure_ack(e, "Failed to add reaction.")

        dispatcher.broadcast("messageReaction", reaction.to_dict())
        return None


    @socketio.on("typing")
    def handle_typing(data=None):
        """Tell everyone else the sender is typing"""
        participant = presence.get(request.sid)
        if participant is None:
            return
        dispatcher.broadcast_others("userTyping", participant.identity(), request.sid)


    @socketio.on("stoppedTyping")
    def handle_stopped_typing(data=None):
        """Tell everyone else the sender stopped typing"""
        participant = presence.get(request.sid)
        if participant is None:
            return
        dispatcher.broadcast_others("userStoppedTyping", participant.identity(), request.sid)
