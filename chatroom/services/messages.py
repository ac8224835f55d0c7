"""
Message state transitions for the chat room.

Creates, edits, deletes and reacts to messages on behalf of a joined
participant. Every operation validates and authorizes first, then performs
its storage I/O, and only then returns a result ready to broadcast.
"""

import logging
from dataclasses import dataclass

from .errors import Unauthenticated, ValidationError, NotFound, Forbidden, StorageError, DegradedRead


logger = logging.getLogger(__name__)

AUDIO_MESSAGE_LABEL = "Audio message"
FILE_MESSAGE_LABEL = "File shared"


@dataclass
class ReactionResult:
    message_id: int
    emoji: str
    username: str
    removed: bool = False

    def to_dict(self):
        reaction = {"messageId": self.message_id, "emoji": self.emoji, "username": self.username}
        if self.removed:
            reaction["removed"] = True
        return reaction


def parse_message_id(value, field_name="Message ID"):
    """Coerce a client-supplied message id to an int.

    Only real ints and digit strings are accepted; anything lossy, such as
    1.9, is rejected rather than truncated onto another message.
    """
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required.")
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} is invalid.")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{field_name} is invalid.")


def parse_flag(value):
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def require_text(content, message="Message cannot be empty."):
    if not isinstance(content, str) or not content.strip():
        raise ValidationError(message)
    return content.strip()


class MessageService:
    """Validated create/edit/delete/react operations against the store"""

    def __init__(self, store):
        self.store = store

    def _require_author(self, author, action):
        if author is None:
            raise Unauthenticated(f"You must be logged in to {action}.")
        return author

    def _enrich(self, row, author, reactions=None, parent=None):
        message = dict(row, username=author.username, reactions=reactions or [])
        if parent is not None:
            message["parentMessage"] = parent
        return message

    def _current_reactions(self, message_id):
        try:
            return self.store.reactions_for([message_id])
        except StorageError as e:
            logger.warning(DegradedRead("reactions", e.__cause__ or e).message)
            return []

    def _parent_summary(self, parent_message_id):
        if parent_message_id is None:
            return None
        try:
            parents = self.store.parent_summaries([parent_message_id])
        except StorageError as e:
            logger.warning(DegradedRead("parent message", e.__cause__ or e).message)
            return None
        return parents[0] if parents else None

    def _owned_message(self, author, message_id, verb):
        message_id = parse_message_id(message_id)
        message = self.store.get_message(message_id)
        if message is None:
            raise NotFound()
        if message["user_id"] != author.user_id:
            raise Forbidden(f"You can only {verb} your own messages.")
        return message

    # Creation

    def create_text(self, author, content):
        author = self._require_author(author, "send messages")
        content = require_text(content)

        row = self.store.insert_message(author.user_id, content)
        logger.info(f"Message {row['id']} saved from {author.username}")
        # A brand new message cannot have reactions yet
        return self._enrich(row, author)

    def create_reply(self, author, content, parent_message_id):
        author = self._require_author(author, "send messages")
        content = require_text(content, "Message content is required.")
        parent_message_id = parse_message_id(parent_message_id, "Parent message ID")

        parents = self.store.parent_summaries([parent_message_id])
        if not parents:
            raise NotFound("Parent message not found.")

        row = self.store.insert_message(author.user_id, content, parent_message_id=parent_message_id)
        logger.info(f"Reply {row['id']} to message {parent_message_id} saved from {author.username}")
        return self._enrich(row, author, parent=parents[0])

    def create_audio(self, author, audio_url, duration=None):
        author = self._require_author(author, "send messages")
        if not audio_url:
            raise ValidationError("Audio URL is required.")

        try:
            duration = float(duration) if duration not in (None, "") else 0
        except (TypeError, ValueError):
            raise ValidationError("Audio duration is invalid.")

        row = self.store.insert_message(
            author.user_id,
            AUDIO_MESSAGE_LABEL,
            type="audio",
            audio_url=audio_url,
            audio_duration=duration
        )
        logger.info(f"Audio message {row['id']} saved from {author.username}")
        return self._enrich(row, author)

    def create_file(self, author, file_url, file_name=None, file_type=None, file_size=None,
                    is_image=False, caption=None):
        author = self._require_author(author, "send files")
        if not file_url:
            raise ValidationError("File URL is required.")

        if file_size not in (None, ""):
            try:
                file_size = int(file_size)
            except (TypeError, ValueError):
                raise ValidationError("File size is invalid.")
        else:
            file_size = None

        caption = caption.strip() if isinstance(caption, str) else ""
        row = self.store.insert_message(
            author.user_id,
            caption or FILE_MESSAGE_LABEL,
            type="file",
            file_url=file_url,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            is_image=parse_flag(is_image)
        )
        logger.info(f"File message {row['id']} saved from {author.username}")
        return self._enrich(row, author)

    # Mutation

    def edit(self, author, message_id, content):
        author = self._require_author(author, "edit messages")
        message = self._owned_message(author, message_id, "edit")
        if message["is_deleted"]:
            raise Forbidden("Deleted messages cannot be edited.")
        content = require_text(content)

        row = self.store.update_message_content(message["id"], content)
        if row is None:
            raise NotFound()
        logger.info(f"Message {row['id']} edited by {author.username}")
        return self._enrich(
            row,
            author,
            reactions=self._current_reactions(row["id"]),
            parent=self._parent_summary(row["parent_message_id"])
        )

    def delete(self, author, message_id):
        author = self._require_author(author, "delete messages")
        message = self._owned_message(author, message_id, "delete")

        row = self.store.mark_message_deleted(message["id"])
        if row is None:
            raise NotFound()
        logger.info(f"Message {row['id']} deleted by {author.username}")
        return self._enrich(
            row,
            author,
            reactions=self._current_reactions(row["id"]),
            parent=self._parent_summary(row["parent_message_id"])
        )

    def toggle_reaction(self, author, message_id, emoji):
        author = self._require_author(author, "react to messages")
        message_id = parse_message_id(message_id)
        if not isinstance(emoji, str) or not emoji.strip():
            raise ValidationError("Emoji is required.")
        emoji = emoji.strip()

        if self.store.get_message(message_id) is None:
            raise NotFound()

        added = self.store.toggle_reaction(message_id, author.user_id, emoji)
        logger.info(f"Reaction {emoji} {'added to' if added else 'removed from'} message {message_id} by {author.username}")
        return ReactionResult(message_id=message_id, emoji=emoji, username=author.username, removed=not added)
