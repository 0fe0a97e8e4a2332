"""Unread message counter across all threads of a member."""

from collections.abc import Awaitable, Callable

from structlog.stdlib import BoundLogger

from famchat.application.services.query_keys import unread_key
from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.event import ChangeAction, ChangeEvent
from famchat.domain.entities.message import Message
from famchat.domain.entities.types import EPOCH
from famchat.domain.repositories import MessageRepository, ThreadRepository
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.realtime import (
    RealtimeChannel,
    RealtimeHub,
    ReconnectingSubscription,
)
from famchat.infrastructure.scheduling import PeriodicTask

CountCallback = Callable[[int], Awaitable[None]]


class UnreadCounter:
    """Counts messages from others newer than the member's last read.

    The count is refreshed on a fixed poll and immediately after any message
    insert anywhere, since it spans every thread. Computing it issues one
    count query per membership.
    """

    def __init__(
        self,
        threads: ThreadRepository,
        messages: MessageRepository,
        hub: RealtimeHub,
        cache: QueryCache,
        chat_config: ChatConfig,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        self._threads = threads
        self._messages = messages
        self._hub = hub
        self._cache = cache
        self._chat_config = chat_config
        self._realtime_config = realtime_config
        self._logger = logger
        self._member_id: str | None = None
        self._on_change: CountCallback | None = None
        self._poller: PeriodicTask | None = None
        self._subscription: ReconnectingSubscription | None = None
        self.latest: int | None = None

    async def unread_count(self, member_id: str) -> int:
        """Return the member's total unread count."""
        return await self._cache.fetch(
            unread_key(member_id), lambda: self._compute(member_id)
        )

    async def _compute(self, member_id: str) -> int:
        memberships = await self._threads.list_memberships(member_id)
        total = 0
        for membership in memberships:
            after = membership.last_read_at or EPOCH
            total += await self._messages.count_unread(
                membership.thread_id, member_id, after
            )
        return total

    async def start(
        self, member_id: str, on_change: CountCallback | None = None
    ) -> None:
        """Begin polling and listening for inserts on behalf of a member."""
        if self._subscription is not None:
            return
        self._member_id = member_id
        self._on_change = on_change

        async def on_insert(event: ChangeEvent) -> None:
            await self.refresh()

        def build_channel() -> RealtimeChannel:
            return self._hub.channel("unread-badge").on_change(
                Message.__tablename__, on_insert, action=ChangeAction.INSERT
            )

        self._subscription = ReconnectingSubscription(
            build_channel, self._realtime_config, self._logger
        )
        await self._subscription.start()
        self._poller = PeriodicTask(
            name="unread-count",
            interval=self._chat_config.unread_poll_interval,
            callback=self.refresh,
            logger=self._logger,
        )
        self._poller.start()
        await self.refresh()

    async def refresh(self) -> int | None:
        """Recompute the count; notify ``on_change`` when it moved."""
        if self._member_id is None:
            return None
        member_id = self._member_id
        count = await self._cache.refresh(
            unread_key(member_id), lambda: self._compute(member_id)
        )
        if count != self.latest:
            self.latest = count
            if self._on_change is not None:
                await self._on_change(count)
        return count

    async def stop(self) -> None:
        """Stop polling and release the subscription."""
        if self._poller is not None:
            await self._poller.stop()
            self._poller = None
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
        self._member_id = None
