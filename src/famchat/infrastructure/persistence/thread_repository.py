"""SQLite implementation of ThreadRepository."""

from datetime import datetime

from sqlalchemy import delete, update
from sqlmodel import col, select

from famchat.domain.entities.event import ChangeAction
from famchat.domain.entities.message import Message
from famchat.domain.entities.thread import Thread, ThreadKind, ThreadMember
from famchat.infrastructure.persistence.change_feed import ChangeEmitter, ChangeSink
from famchat.infrastructure.persistence.database import Database


class SqliteThreadRepository(ChangeEmitter):
    """SQLite implementation of ThreadRepository."""

    def __init__(
        self, database: Database, change_sink: ChangeSink | None = None
    ) -> None:
        """Initialize the repository.

        Args:
            database: Database instance for session management.
            change_sink: Receives committed thread changes.
        """
        self._database = database
        self._change_sink = change_sink

    async def create(self, thread: Thread, member_ids: list[str]) -> Thread:
        """Insert a thread and its members in one transaction."""
        async with self._database.get_session() as session:
            session.add(thread)
            await session.flush()
            for member_id in dict.fromkeys(member_ids):
                session.add(ThreadMember(thread_id=thread.id, member_id=member_id))
        await self._emit(Thread.__tablename__, ChangeAction.INSERT, thread)
        return thread

    async def get(self, thread_id: str) -> Thread | None:
        async with self._database.get_session() as session:
            return await session.get(Thread, thread_id)

    async def list_for_member(self, member_id: str) -> list[Thread]:
        async with self._database.get_session() as session:
            statement = (
                select(Thread)
                .join(ThreadMember, col(ThreadMember.thread_id) == col(Thread.id))
                .where(ThreadMember.member_id == member_id)
                .order_by(col(Thread.created_at).asc(), col(Thread.id).asc())
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def list_group_threads(self, title: str) -> list[Thread]:
        async with self._database.get_session() as session:
            statement = (
                select(Thread)
                .where(Thread.kind == ThreadKind.GROUP)
                .where(Thread.title == title)
                .order_by(col(Thread.created_at).asc(), col(Thread.id).asc())
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def find_direct(self, direct_key: str) -> Thread | None:
        async with self._database.get_session() as session:
            statement = select(Thread).where(Thread.direct_key == direct_key)
            result = await session.execute(statement)
            return result.scalars().first()

    async def delete(self, thread_id: str) -> bool:
        """Delete a thread, cascading to its members and messages.

        Returns:
            True if the thread existed.
        """
        async with self._database.get_session() as session:
            thread = await session.get(Thread, thread_id)
            if thread is None:
                return False
            await session.execute(
                delete(ThreadMember).where(col(ThreadMember.thread_id) == thread_id)
            )
            await session.execute(
                delete(Message).where(col(Message.thread_id) == thread_id)
            )
            await session.delete(thread)
        await self._emit(Thread.__tablename__, ChangeAction.DELETE, thread)
        return True

    async def add_members(self, thread_id: str, member_ids: list[str]) -> list[str]:
        async with self._database.get_session() as session:
            statement = select(ThreadMember.member_id).where(
                ThreadMember.thread_id == thread_id
            )
            existing = set((await session.execute(statement)).scalars().all())
            added = [m for m in dict.fromkeys(member_ids) if m not in existing]
            for member_id in added:
                session.add(ThreadMember(thread_id=thread_id, member_id=member_id))
        return added

    async def list_members(self, thread_id: str) -> list[ThreadMember]:
        async with self._database.get_session() as session:
            statement = (
                select(ThreadMember)
                .where(ThreadMember.thread_id == thread_id)
                .order_by(col(ThreadMember.joined_at).asc())
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def list_memberships(self, member_id: str) -> list[ThreadMember]:
        async with self._database.get_session() as session:
            statement = select(ThreadMember).where(ThreadMember.member_id == member_id)
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def update_last_read(
        self, thread_id: str, member_id: str, read_at: datetime
    ) -> bool:
        """Set ``last_read_at`` for exactly one (thread, member) pair."""
        async with self._database.get_session() as session:
            statement = (
                update(ThreadMember)
                .where(col(ThreadMember.thread_id) == thread_id)
                .where(col(ThreadMember.member_id) == member_id)
                .values(last_read_at=read_at)
            )
            result = await session.execute(statement)
            return bool(result.rowcount)  # type: ignore[attr-defined]
