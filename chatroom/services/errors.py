"""
Error taxonomy for chat room operations.

Every error carries a client-facing ``message``. The socket handlers turn
them into ``{"message": ...}`` acknowledgements for the originating
connection; none of them is ever broadcast.
"""


class ChatError(Exception):
    """Base class for failures reported back to the originating client"""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_ack(self):
        return {"message": self.message}


class Unauthenticated(ChatError):
    """The connection has not completed a join"""

    default_message = "You must be logged in."


class ValidationError(ChatError):
    """A required field is missing or empty"""

    default_message = "Invalid request."


class NotFound(ChatError):
    """A referenced message does not exist"""

    default_message = "Message not found."


class Forbidden(ChatError):
    """The acting user may not mutate this message"""

    default_message = "You are not allowed to change this message."


class StorageError(ChatError):
    """The durable store call failed"""

    default_message = "A storage error occurred. Please try again."


class DegradedRead(ChatError):
    """An enrichment read failed; the result carries partial data"""

    def __init__(self, stage, cause=None):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Could not load {stage}: {cause}")
