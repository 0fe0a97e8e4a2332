"""Realtime subscriptions that rejoin after transport failures."""

import asyncio
from collections.abc import Awaitable, Callable

from structlog.stdlib import BoundLogger

from famchat.config.models import RealtimeConfig
from famchat.domain.errors import SubscriptionError
from famchat.infrastructure.realtime.hub import RealtimeChannel, SubscribeStatus

ChannelFactory = Callable[[], RealtimeChannel]
SubscribedCallback = Callable[[RealtimeChannel], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


def backoff_delays(config: RealtimeConfig) -> Callable[[int], float]:
    """Return a function mapping a 0-based attempt number to its delay."""

    def delay(attempt: int) -> float:
        value = config.reconnect_initial_delay * (config.reconnect_multiplier**attempt)
        return float(min(value, config.reconnect_max_delay))

    return delay


class ReconnectingSubscription:
    """Keeps a channel subscribed across transport failures.

    The channel is rebuilt by ``channel_factory`` on every attempt, so the
    factory must register all bindings. ``on_subscribed`` runs after each
    successful join, which is where presence payloads are (re)tracked.

    Args:
        channel_factory: Builds a fresh, unsubscribed channel.
        config: Backoff parameters.
        logger: Structured logger.
        on_subscribed: Called with the channel after each successful join.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        channel_factory: ChannelFactory,
        config: RealtimeConfig,
        logger: BoundLogger,
        on_subscribed: SubscribedCallback | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._channel_factory = channel_factory
        self._config = config
        self._logger = logger
        self._on_subscribed = on_subscribed
        self._sleep = sleep
        self._delay = backoff_delays(config)
        self._channel: RealtimeChannel | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._closed = False
        self.reconnect_count = 0

    @property
    def channel(self) -> RealtimeChannel | None:
        """Return the current channel, if subscribed."""
        return self._channel

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Subscribe, retrying with backoff.

        Raises:
            SubscriptionError: If ``reconnect_max_attempts`` is exhausted.
        """
        await self._connect()

    async def close(self) -> None:
        """Stop reconnecting and leave the channel."""
        self._closed = True
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        channel, self._channel = self._channel, None
        if channel is not None:
            await channel.unsubscribe()

    async def _connect(self) -> None:
        attempt = 0
        while not self._closed:
            channel = self._channel_factory()
            try:
                await channel.subscribe(self._on_status)
            except SubscriptionError as e:
                max_attempts = self._config.reconnect_max_attempts
                if max_attempts is not None and attempt + 1 >= max_attempts:
                    self._logger.error(
                        "Realtime subscription failed, giving up",
                        topic=channel.topic,
                        attempts=attempt + 1,
                        error=str(e),
                    )
                    raise
                delay = self._delay(attempt)
                self._logger.warning(
                    "Realtime subscription failed, retrying",
                    topic=channel.topic,
                    attempt=attempt + 1,
                    delay=delay,
                    error=str(e),
                )
                attempt += 1
                await self._sleep(delay)
                continue

            self._channel = channel
            if self._on_subscribed is not None:
                await self._on_subscribed(channel)
            return

    async def _on_status(self, status: SubscribeStatus) -> None:
        if status is not SubscribeStatus.CHANNEL_ERROR or self._closed:
            return
        self._channel = None
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        self.reconnect_count += 1
        try:
            await self._connect()
        except SubscriptionError:
            # Already logged; live updates stay off until the next start()
            pass
