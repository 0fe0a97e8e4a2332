"""ThreadRepository protocol."""

from datetime import datetime
from typing import Protocol

from famchat.domain.entities.thread import Thread, ThreadMember


class ThreadRepository(Protocol):
    """Repository protocol for threads and memberships."""

    async def create(self, thread: Thread, member_ids: list[str]) -> Thread:
        """Insert a thread together with its initial members.

        Args:
            thread: The thread to insert.
            member_ids: Members to add, in insertion order.

        Returns:
            The stored thread.

        Raises:
            sqlalchemy.exc.IntegrityError: If a direct thread already exists
                for the same member pair.
        """
        ...

    async def get(self, thread_id: str) -> Thread | None:
        """Get a thread by ID."""
        ...

    async def list_for_member(self, member_id: str) -> list[Thread]:
        """Get every thread the member belongs to, oldest first."""
        ...

    async def list_group_threads(self, title: str) -> list[Thread]:
        """Get group threads with the given title, oldest first."""
        ...

    async def find_direct(self, direct_key: str) -> Thread | None:
        """Get the direct thread of a member pair."""
        ...

    async def delete(self, thread_id: str) -> bool:
        """Delete a thread with its members and messages.

        Returns:
            True if the thread existed.
        """
        ...

    async def add_members(self, thread_id: str, member_ids: list[str]) -> list[str]:
        """Add members, ignoring those already present.

        Returns:
            IDs of the members that were added.
        """
        ...

    async def list_members(self, thread_id: str) -> list[ThreadMember]:
        """Get the memberships of a thread."""
        ...

    async def list_memberships(self, member_id: str) -> list[ThreadMember]:
        """Get the memberships of a member."""
        ...

    async def update_last_read(
        self, thread_id: str, member_id: str, read_at: datetime
    ) -> bool:
        """Set the last-read timestamp of one membership.

        Returns:
            True if the membership exists.
        """
        ...
