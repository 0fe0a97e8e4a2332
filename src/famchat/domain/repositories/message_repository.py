"""MessageRepository protocol."""

from datetime import datetime
from typing import Protocol

from famchat.domain.entities.message import Message


class MessageRepository(Protocol):
    """Repository protocol for the per-thread message log."""

    async def add(self, message: Message) -> Message:
        """Append a message."""
        ...

    async def get(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        ...

    async def list_for_thread(self, thread_id: str) -> list[Message]:
        """Get all messages of a thread, oldest first.

        Soft-deleted messages are included.
        """
        ...

    async def latest_visible(self, thread_id: str) -> Message | None:
        """Get the newest non-deleted message of a thread."""
        ...

    async def update_content(
        self, message_id: str, editor_id: str, content: str, edited_at: datetime
    ) -> Message:
        """Replace the content of a message.

        Raises:
            MessageNotFoundError: If the message does not exist.
            PermissionDeniedError: If the editor is not the author.
            MessageDeletedError: If the message was deleted.
        """
        ...

    async def soft_delete(self, message_id: str, member_id: str) -> Message:
        """Flag a message deleted and clear its content.

        Raises:
            MessageNotFoundError: If the message does not exist.
            PermissionDeniedError: If the member is not the author.
        """
        ...

    async def count_unread(
        self, thread_id: str, member_id: str, after: datetime
    ) -> int:
        """Count visible messages by others created strictly after a time."""
        ...
