"""SQLite implementation of MessageRepository."""

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from famchat.domain.entities.event import ChangeAction
from famchat.domain.entities.message import Message
from famchat.domain.errors import (
    MessageDeletedError,
    MessageNotFoundError,
    PermissionDeniedError,
)
from famchat.infrastructure.persistence.change_feed import ChangeEmitter, ChangeSink
from famchat.infrastructure.persistence.database import Database


class SqliteMessageRepository(ChangeEmitter):
    """SQLite implementation of MessageRepository.

    Every committed insert and update is forwarded to the change sink, which
    plays the role of the backend's change-data feed.
    """

    def __init__(
        self, database: Database, change_sink: ChangeSink | None = None
    ) -> None:
        """Initialize the repository.

        Args:
            database: Database instance for session management.
            change_sink: Receives committed message changes.
        """
        self._database = database
        self._change_sink = change_sink

    async def add(self, message: Message) -> Message:
        """Append a message to its thread."""
        async with self._database.get_session() as session:
            session.add(message)
        await self._emit(Message.__tablename__, ChangeAction.INSERT, message)
        return message

    async def get(self, message_id: str) -> Message | None:
        async with self._database.get_session() as session:
            return await session.get(Message, message_id)

    async def list_for_thread(self, thread_id: str) -> list[Message]:
        """Get the whole log of a thread, oldest first.

        Soft-deleted rows are returned so placeholders keep their position.
        """
        async with self._database.get_session() as session:
            statement = (
                select(Message)
                .where(Message.thread_id == thread_id)
                .order_by(col(Message.created_at).asc(), col(Message.id).asc())
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def latest_visible(self, thread_id: str) -> Message | None:
        async with self._database.get_session() as session:
            statement = (
                select(Message)
                .where(Message.thread_id == thread_id)
                .where(col(Message.is_deleted).is_(False))
                .order_by(col(Message.created_at).desc(), col(Message.id).desc())
                .limit(1)
            )
            result = await session.execute(statement)
            return result.scalars().first()

    async def update_content(
        self, message_id: str, editor_id: str, content: str, edited_at: datetime
    ) -> Message:
        """Replace the content of an own message.

        ``created_at`` is left untouched so the message keeps its position.

        Raises:
            MessageNotFoundError: If the message does not exist.
            PermissionDeniedError: If the editor is not the author.
            MessageDeletedError: If the message was deleted.
        """
        async with self._database.get_session() as session:
            message = await self._get_owned(session, message_id, editor_id)
            if message.is_deleted:
                raise MessageDeletedError(f"Message was deleted: {message_id}")
            message.content = content
            message.edited_at = edited_at
            session.add(message)
        await self._emit(Message.__tablename__, ChangeAction.UPDATE, message)
        return message

    async def soft_delete(self, message_id: str, member_id: str) -> Message:
        """Flag an own message deleted and clear its content.

        The attachment reference is kept; the stored object is not removed.

        Raises:
            MessageNotFoundError: If the message does not exist.
            PermissionDeniedError: If the member is not the author.
        """
        async with self._database.get_session() as session:
            message = await self._get_owned(session, message_id, member_id)
            message.is_deleted = True
            message.content = ""
            session.add(message)
        await self._emit(Message.__tablename__, ChangeAction.UPDATE, message)
        return message

    async def count_unread(
        self, thread_id: str, member_id: str, after: datetime
    ) -> int:
        """Count visible messages by others created strictly after ``after``."""
        async with self._database.get_session() as session:
            statement = (
                select(func.count())
                .select_from(Message)
                .where(Message.thread_id == thread_id)
                .where(col(Message.is_deleted).is_(False))
                .where(Message.sender_id != member_id)
                .where(col(Message.created_at) > after)
            )
            result = await session.execute(statement)
            count = result.scalar()
            return count if count else 0

    async def _get_owned(
        self, session: AsyncSession, message_id: str, member_id: str
    ) -> Message:
        message = await session.get(Message, message_id)
        if message is None:
            raise MessageNotFoundError(f"Message not found: {message_id}")
        if message.sender_id != member_id:
            raise PermissionDeniedError(
                f"Member {member_id} cannot modify message {message_id}"
            )
        return message
