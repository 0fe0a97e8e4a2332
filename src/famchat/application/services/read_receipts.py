"""Read-receipt tracking."""

from collections.abc import Awaitable, Callable

from structlog.stdlib import BoundLogger

from famchat.application.services.query_keys import (
    RECEIPTS,
    receipts_key,
    unread_key,
)
from famchat.config.models import ChatConfig
from famchat.domain.entities.read_status import ReadStatus, derive_read_status
from famchat.domain.entities.types import utcnow
from famchat.domain.entities.views import MessageView, Receipt
from famchat.domain.repositories import ThreadRepository
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.scheduling import PeriodicTask

ReceiptsCallback = Callable[[list[Receipt]], Awaitable[None]]


class ReadReceiptTracker:
    """Per-member last-read timestamps of a thread.

    Receipts are polled rather than pushed: they tolerate staleness and do
    not justify a change subscription per open thread.
    """

    def __init__(
        self,
        threads: ThreadRepository,
        cache: QueryCache,
        config: ChatConfig,
        logger: BoundLogger,
    ) -> None:
        self._threads = threads
        self._cache = cache
        self._config = config
        self._logger = logger

    async def get_receipts(
        self, thread_id: str, excluding_member: str
    ) -> list[Receipt]:
        """Return the last-read timestamps of every other member."""
        return await self._cache.fetch(
            receipts_key(thread_id, excluding_member),
            lambda: self._load_receipts(thread_id, excluding_member),
        )

    async def _load_receipts(
        self, thread_id: str, excluding_member: str
    ) -> list[Receipt]:
        members = await self._threads.list_members(thread_id)
        return [
            Receipt(member_id=m.member_id, last_read_at=m.last_read_at)
            for m in members
            if m.member_id != excluding_member
        ]

    def watch_receipts(
        self, thread_id: str, member_id: str, on_update: ReceiptsCallback
    ) -> PeriodicTask:
        """Poll the thread's receipts and hand each result to ``on_update``.

        The first poll runs immediately. Stop the returned task when the
        thread view closes.
        """

        async def poll() -> None:
            receipts = await self._cache.refresh(
                receipts_key(thread_id, member_id),
                lambda: self._load_receipts(thread_id, member_id),
            )
            await on_update(receipts)

        task = PeriodicTask(
            name=f"read-receipts:{thread_id}",
            interval=self._config.receipts_poll_interval,
            callback=poll,
            logger=self._logger,
            run_immediately=True,
        )
        task.start()
        return task

    async def mark_thread_read(self, thread_id: str, member_id: str) -> bool:
        """Set the member's last-read timestamp of the thread to now.

        Returns:
            False if the member does not belong to the thread.
        """
        updated = await self._threads.update_last_read(thread_id, member_id, utcnow())
        if not updated:
            self._logger.warning(
                "Mark read for missing membership",
                thread_id=thread_id,
                member_id=member_id,
            )
            return False
        self._cache.invalidate(unread_key(member_id))
        self._cache.invalidate((RECEIPTS, thread_id))
        return True

    async def message_status(self, message: MessageView) -> ReadStatus:
        """Return the delivery status of a message as its sender sees it."""
        receipts = await self.get_receipts(message.thread_id, message.sender_id)
        return derive_read_status(message.created_at, receipts)
