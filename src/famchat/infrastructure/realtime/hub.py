"""In-process publish/subscribe hub with change events and presence."""

import copy
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from famchat.domain.entities.event import ChangeAction, ChangeEvent
from famchat.domain.errors import SubscriptionError

PresenceState = dict[str, list[dict[str, Any]]]
ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]
PresenceSyncCallback = Callable[[PresenceState], Awaitable[None]]
StatusCallback = Callable[["SubscribeStatus"], Awaitable[None]]


class SubscribeStatus(str, Enum):
    """Status reported to a channel's status callback."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    CLOSED = "CLOSED"


class ChannelState(str, Enum):
    """Lifecycle of a channel connection."""

    CLOSED = "closed"
    JOINED = "joined"
    ERRORED = "errored"


@dataclass
class _ChangeBinding:
    table: str
    action: ChangeAction | None
    where: dict[str, str]
    callback: ChangeCallback

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.action is not None and event.action != self.action:
            return False
        return all(
            str(event.record.get(column)) == value
            for column, value in self.where.items()
        )


@dataclass(eq=False)
class RealtimeChannel:
    """One connection to a topic on the hub.

    Bindings are registered before ``subscribe()``. A channel opened with a
    ``presence_key`` may track a single presence payload under that key; the
    payload disappears when the channel unsubscribes or its transport drops.
    """

    hub: "RealtimeHub"
    topic: str
    presence_key: str | None = None
    state: ChannelState = ChannelState.CLOSED
    _change_bindings: list[_ChangeBinding] = field(default_factory=list)
    _sync_callbacks: list[PresenceSyncCallback] = field(default_factory=list)
    _status_callback: StatusCallback | None = None
    _presence: PresenceState = field(default_factory=dict)

    def on_change(
        self,
        table: str,
        callback: ChangeCallback,
        action: ChangeAction | None = None,
        where: dict[str, str] | None = None,
    ) -> "RealtimeChannel":
        """Deliver row changes of ``table`` matching ``action`` and ``where``."""
        self._change_bindings.append(
            _ChangeBinding(
                table=table, action=action, where=where or {}, callback=callback
            )
        )
        return self

    def on_presence_sync(self, callback: PresenceSyncCallback) -> "RealtimeChannel":
        """Deliver the full presence snapshot on every join and leave."""
        self._sync_callbacks.append(callback)
        return self

    async def subscribe(self, on_status: StatusCallback | None = None) -> None:
        """Join the topic.

        Raises:
            SubscriptionError: If the hub transport is unavailable.
        """
        self._status_callback = on_status
        await self.hub._join(self)
        if on_status is not None:
            await on_status(SubscribeStatus.SUBSCRIBED)

    async def track(self, payload: dict[str, Any]) -> None:
        """Publish this connection's presence payload.

        Raises:
            SubscriptionError: If the channel is not joined or has no key.
        """
        if self.state is not ChannelState.JOINED:
            raise SubscriptionError(f"Channel {self.topic} is not subscribed")
        if self.presence_key is None:
            raise SubscriptionError(f"Channel {self.topic} has no presence key")
        await self.hub._track(self, payload)

    async def untrack(self) -> None:
        """Withdraw this connection's presence payload."""
        if self.state is ChannelState.JOINED:
            await self.hub._untrack(self)

    async def unsubscribe(self) -> None:
        """Leave the topic; safe to call more than once."""
        if self.state is ChannelState.CLOSED:
            return
        await self.hub._leave(self)
        if self._status_callback is not None:
            await self._status_callback(SubscribeStatus.CLOSED)

    def presence_state(self) -> PresenceState:
        """Return the last presence snapshot received."""
        return copy.deepcopy(self._presence)

    async def _deliver_change(self, event: ChangeEvent) -> int:
        delivered = 0
        for binding in list(self._change_bindings):
            if binding.matches(event):
                await binding.callback(event)
                delivered += 1
        return delivered

    async def _deliver_sync(self, state: PresenceState) -> None:
        self._presence = state
        for callback in list(self._sync_callbacks):
            await callback(copy.deepcopy(state))

    async def _transport_lost(self) -> None:
        self.state = ChannelState.ERRORED
        self._presence = {}
        if self._status_callback is not None:
            await self._status_callback(SubscribeStatus.CHANNEL_ERROR)


class RealtimeHub:
    """Local stand-in for the backend's realtime service.

    Topics are shared by every connection that joins them. Change events are
    fanned out to matching bindings of joined channels; presence snapshots are
    broadcast to every joined channel of a topic whenever a payload is
    tracked, untracked, or lost with its connection.
    """

    def __init__(self, logger: BoundLogger | None = None) -> None:
        self._logger = logger or structlog.stdlib.get_logger("realtime")
        self._channels: dict[str, list[RealtimeChannel]] = {}
        self._presence: dict[str, dict[int, tuple[str, dict[str, Any]]]] = {}
        self._available = True

    @property
    def available(self) -> bool:
        """Return False while the transport is down."""
        return self._available

    def channel(self, topic: str, presence_key: str | None = None) -> RealtimeChannel:
        """Open a new, not yet subscribed connection to ``topic``."""
        return RealtimeChannel(hub=self, topic=topic, presence_key=presence_key)

    def joined_count(self, topic: str) -> int:
        """Return the number of joined connections on a topic."""
        return len(self._channels.get(topic, []))

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver a change event to every matching binding.

        A failing callback is logged and does not stop delivery to others.

        Returns:
            Number of bindings the event was delivered to.
        """
        delivered = 0
        for channels in list(self._channels.values()):
            for channel in list(channels):
                try:
                    delivered += await channel._deliver_change(event)
                except Exception as e:
                    self._logger.error(
                        "Change callback failed",
                        topic=channel.topic,
                        table=event.table,
                        error=str(e),
                        exc_info=True,
                    )
        self._logger.debug(
            "Change published",
            table=event.table,
            action=event.action.value,
            delivered=delivered,
        )
        return delivered

    async def set_available(self, available: bool) -> None:
        """Bring the transport down or back up.

        Going down drops every joined channel: their presence entries vanish,
        remaining topics are not notified (nobody is connected), and each
        channel reports CHANNEL_ERROR to its status callback.
        """
        self._available = available
        if available:
            return
        dropped = [ch for channels in self._channels.values() for ch in channels]
        self._channels.clear()
        self._presence.clear()
        self._logger.warning("Realtime transport lost", dropped=len(dropped))
        for channel in dropped:
            await channel._transport_lost()

    async def _join(self, channel: RealtimeChannel) -> None:
        if not self._available:
            raise SubscriptionError(
                f"Realtime transport unavailable for {channel.topic}"
            )
        if channel.state is ChannelState.JOINED:
            return
        self._channels.setdefault(channel.topic, []).append(channel)
        channel.state = ChannelState.JOINED
        if channel._sync_callbacks:
            await channel._deliver_sync(self._snapshot(channel.topic))

    async def _leave(self, channel: RealtimeChannel) -> None:
        channels = self._channels.get(channel.topic, [])
        if channel in channels:
            channels.remove(channel)
        if not channels:
            self._channels.pop(channel.topic, None)
        channel.state = ChannelState.CLOSED
        had_presence = self._presence.get(channel.topic, {}).pop(id(channel), None)
        if had_presence is not None:
            await self._broadcast_sync(channel.topic)

    async def _track(self, channel: RealtimeChannel, payload: dict[str, Any]) -> None:
        assert channel.presence_key is not None
        self._presence.setdefault(channel.topic, {})[id(channel)] = (
            channel.presence_key,
            copy.deepcopy(payload),
        )
        await self._broadcast_sync(channel.topic)

    async def _untrack(self, channel: RealtimeChannel) -> None:
        if self._presence.get(channel.topic, {}).pop(id(channel), None) is not None:
            await self._broadcast_sync(channel.topic)

    def _snapshot(self, topic: str) -> PresenceState:
        state: PresenceState = {}
        for key, payload in self._presence.get(topic, {}).values():
            state.setdefault(key, []).append(copy.deepcopy(payload))
        return state

    async def _broadcast_sync(self, topic: str) -> None:
        state = self._snapshot(topic)
        for channel in list(self._channels.get(topic, [])):
            if channel._sync_callbacks:
                try:
                    await channel._deliver_sync(state)
                except Exception as e:
                    self._logger.error(
                        "Presence sync callback failed",
                        topic=topic,
                        error=str(e),
                        exc_info=True,
                    )
