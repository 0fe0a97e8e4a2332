"""Exceptions raised by the chat core."""


class ChatError(Exception):
    """Base exception for chat errors."""


class ChatValidationError(ChatError):
    """Raised when input is rejected locally, before any backend call."""


class AttachmentTooLargeError(ChatValidationError):
    """Raised when an attachment exceeds the configured size cap."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Attachment is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


class InvalidDirectThreadError(ChatValidationError):
    """Raised when a direct thread is requested with oneself."""


class MessageNotFoundError(ChatError):
    """Raised when a message does not exist."""


class MessageDeletedError(ChatError):
    """Raised when a soft-deleted message is edited."""


class PermissionDeniedError(ChatError):
    """Raised when a member mutates a row it does not own."""


class SubscriptionError(ChatError):
    """Raised when a realtime channel cannot be subscribed."""
