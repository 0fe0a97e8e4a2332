"""Presence tracking on the shared family channel."""

from collections.abc import Awaitable, Callable
from datetime import datetime

from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.presence import PresenceEntry
from famchat.domain.entities.types import utcnow
from famchat.domain.repositories import ProfileRepository
from famchat.infrastructure.realtime import (
    PresenceState,
    RealtimeChannel,
    RealtimeHub,
    ReconnectingSubscription,
)
from famchat.infrastructure.scheduling import PeriodicTask

PRESENCE_TOPIC = "family-presence"

OnlineCallback = Callable[[list[PresenceEntry]], Awaitable[None]]


def flatten_presence(state: PresenceState, own_member_id: str) -> list[PresenceEntry]:
    """Turn a presence snapshot into one entry per other member.

    The presence key is the member id. A member connected twice appears once,
    with the first payload of its key; a missing name becomes "" and a missing
    avatar None. Payloads that do not parse are skipped.
    """
    online = []
    for key, payloads in state.items():
        if key == own_member_id or not payloads:
            continue
        payload = payloads[0]
        try:
            entry = PresenceEntry.model_validate(
                {
                    **payload,
                    "member_id": key,
                    "full_name": payload.get("full_name") or "",
                    "avatar_url": payload.get("avatar_url") or None,
                }
            )
        except ValidationError:
            continue
        online.append(entry)
    return online


class PresenceTracker:
    """Publishes the session's presence and follows everyone else's."""

    def __init__(
        self,
        hub: RealtimeHub,
        profiles: ProfileRepository,
        chat_config: ChatConfig,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        self._hub = hub
        self._profiles = profiles
        self._chat_config = chat_config
        self._realtime_config = realtime_config
        self._logger = logger
        self._member_id: str | None = None
        self._entry: PresenceEntry | None = None
        self._subscription: ReconnectingSubscription | None = None
        self._heartbeat: PeriodicTask | None = None
        self._listeners: list[OnlineCallback] = []
        self._online: list[PresenceEntry] = []

    @property
    def online_members(self) -> list[PresenceEntry]:
        """Other members currently online."""
        return list(self._online)

    def on_change(self, callback: OnlineCallback) -> None:
        """Register a listener for the online list."""
        self._listeners.append(callback)

    def is_online(self, member_id: str) -> bool:
        return any(entry.member_id == member_id for entry in self._online)

    async def last_seen(self, member_id: str) -> datetime | None:
        """Return when the member was last known online.

        Online members report their presence timestamp; offline members fall
        back to the durable timestamp on their profile.
        """
        for entry in self._online:
            if entry.member_id == member_id:
                return entry.online_at
        profile = await self._profiles.get(member_id)
        return profile.last_seen_at if profile is not None else None

    async def start(self, member_id: str) -> None:
        """Join the presence channel as ``member_id`` and start the heartbeat."""
        if self._subscription is not None:
            return
        profile = await self._profiles.get(member_id)
        self._member_id = member_id
        self._entry = PresenceEntry(
            member_id=member_id,
            full_name=profile.full_name if profile is not None else "",
            avatar_url=profile.avatar_url if profile is not None else None,
        )

        def build_channel() -> RealtimeChannel:
            channel = self._hub.channel(PRESENCE_TOPIC, presence_key=member_id)
            return channel.on_presence_sync(self._on_sync)

        self._subscription = ReconnectingSubscription(
            build_channel,
            self._realtime_config,
            self._logger,
            on_subscribed=self._track,
        )
        await self._subscription.start()

        self._heartbeat = PeriodicTask(
            name="presence-last-seen",
            interval=self._chat_config.last_seen_interval,
            callback=self._touch_last_seen,
            logger=self._logger,
            run_immediately=True,
        )
        self._heartbeat.start()
        self._logger.info("Presence started", member_id=member_id)

    async def stop(self) -> None:
        """Leave the presence channel; other sessions see the entry vanish."""
        if self._heartbeat is not None:
            await self._heartbeat.stop()
            self._heartbeat = None
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
        self._online = []
        self._member_id = None
        self._entry = None

    async def _track(self, channel: RealtimeChannel) -> None:
        assert self._entry is not None
        await channel.track(self._entry.model_dump(mode="json"))

    async def _on_sync(self, state: PresenceState) -> None:
        if self._member_id is None:
            return
        self._online = flatten_presence(state, self._member_id)
        for listener in list(self._listeners):
            await listener(self.online_members)

    async def _touch_last_seen(self) -> None:
        if self._member_id is not None:
            await self._profiles.touch_last_seen(self._member_id, utcnow())
