"""Notification dispatcher: chime and platform notifications for new messages."""

import asyncio
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from jinja2 import Template
from pydantic import BaseModel
from structlog.stdlib import BoundLogger

from famchat.application.services.notification_preferences import (
    NotificationPermissionGate,
    NotificationPreferences,
)
from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.event import ChangeAction, ChangeEvent
from famchat.domain.entities.message import Message
from famchat.domain.repositories import ProfileRepository
from famchat.infrastructure.notifications import (
    AppWindow,
    ChimePlayer,
    NotificationHandle,
    NotificationPlatform,
)
from famchat.infrastructure.realtime import (
    RealtimeChannel,
    RealtimeHub,
    ReconnectingSubscription,
)

NOTIFICATION_TAG = "chat-message"
FALLBACK_SENDER_NAME = "Family Member"
SEEN_MESSAGE_LIMIT = 256

NOTIFICATION_TITLE_TEMPLATE = Template("💬 {{ sender_name }}")


@dataclass(frozen=True)
class ViewContext:
    """What the member is currently looking at."""

    active_thread_id: str | None = None


class SuppressionReason(str, Enum):
    """Why an inserted message produced no notification at all."""

    OWN_MESSAGE = "own_message"
    DELETED = "deleted"
    ACTIVE_THREAD = "active_thread"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class NotificationOutcome:
    """What ``handle_insert`` did for one message."""

    sound_played: bool = False
    push_shown: bool = False
    suppressed: SuppressionReason | None = None


class InsertedMessage(BaseModel):
    """The fields of an inserted message row the dispatcher reads."""

    id: str
    thread_id: str
    sender_id: str
    content: str = ""
    is_deleted: bool = False


def truncate_body(content: str, limit: int) -> str:
    """Cut ``content`` to ``limit`` characters, marking the cut with an ellipsis."""
    if len(content) > limit:
        return content[:limit] + "…"
    return content


class NotificationDispatcher:
    """Turns message inserts into a chime and, when unfocused, a notification.

    Args:
        member_id: Member the session runs for; own messages never notify.
        profiles: Profile repository, for sender names.
        preferences: Sound and push flags of the member.
        permission: Push permission gate.
        platform: Platform notification API.
        window: The application window.
        chime: Chime player.
        hub: Realtime hub to subscribe on.
        chat_config: Dismiss delay and body limit.
        realtime_config: Reconnect policy.
        logger: Structured logger.
        context: Initial view context.
    """

    def __init__(
        self,
        member_id: str,
        profiles: ProfileRepository,
        preferences: NotificationPreferences,
        permission: NotificationPermissionGate,
        platform: NotificationPlatform,
        window: AppWindow,
        chime: ChimePlayer,
        hub: RealtimeHub,
        chat_config: ChatConfig,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
        context: ViewContext | None = None,
    ) -> None:
        self._member_id = member_id
        self._profiles = profiles
        self._preferences = preferences
        self._permission = permission
        self._platform = platform
        self._window = window
        self._chime = chime
        self._hub = hub
        self._chat_config = chat_config
        self._realtime_config = realtime_config
        self._logger = logger
        self._context = context or ViewContext()
        self._seen: deque[str] = deque(maxlen=SEEN_MESSAGE_LIMIT)
        self._dismiss_timers: dict[str, asyncio.TimerHandle] = {}
        self._subscription: ReconnectingSubscription | None = None

    @property
    def context(self) -> ViewContext:
        return self._context

    def update_context(self, context: ViewContext) -> None:
        self._context = context

    def set_active_thread(self, thread_id: str | None) -> None:
        self._context = replace(self._context, active_thread_id=thread_id)

    async def start(self) -> None:
        """Subscribe to message inserts across every thread."""
        if self._subscription is not None:
            return

        async def on_insert(event: ChangeEvent) -> None:
            await self.handle_insert(event.record)

        def build_channel() -> RealtimeChannel:
            return self._hub.channel("message-notifications").on_change(
                Message.__tablename__, on_insert, action=ChangeAction.INSERT
            )

        self._subscription = ReconnectingSubscription(
            build_channel, self._realtime_config, self._logger
        )
        await self._subscription.start()

    async def stop(self) -> None:
        """Release the subscription and cancel pending auto-dismissals."""
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
        for timer in self._dismiss_timers.values():
            timer.cancel()
        self._dismiss_timers.clear()

    async def handle_insert(self, record: dict[str, Any]) -> NotificationOutcome:
        """Decide and perform the notifications for one inserted message."""
        message = InsertedMessage.model_validate(record)

        if message.sender_id == self._member_id:
            return NotificationOutcome(suppressed=SuppressionReason.OWN_MESSAGE)
        if message.is_deleted:
            return NotificationOutcome(suppressed=SuppressionReason.DELETED)
        if message.thread_id == self._context.active_thread_id:
            return NotificationOutcome(suppressed=SuppressionReason.ACTIVE_THREAD)
        if message.id in self._seen:
            return NotificationOutcome(suppressed=SuppressionReason.DUPLICATE)
        self._seen.append(message.id)

        sound_played = False
        if await self._preferences.sound_enabled():
            sound_played = await self._play_chime()

        push_shown = False
        if not self._window.has_focus():
            push_shown = await self._show_push(message)

        return NotificationOutcome(sound_played=sound_played, push_shown=push_shown)

    async def _play_chime(self) -> bool:
        try:
            await self._chime.play()
        except Exception as e:
            self._logger.warning("Chime playback failed", error=str(e))
            return False
        return True

    async def _show_push(self, message: InsertedMessage) -> bool:
        profile = await self._profiles.get(message.sender_id)
        sender_name = profile.full_name if profile is not None else ""

        if not await self._preferences.push_enabled():
            return False
        if not self._platform.supported or not self._permission.granted:
            return False

        handle: NotificationHandle | None = None

        def on_click() -> None:
            self._window.focus()
            if handle is not None:
                self._close(handle)

        handle = self._platform.show(
            NOTIFICATION_TITLE_TEMPLATE.render(
                sender_name=sender_name or FALLBACK_SENDER_NAME
            ),
            truncate_body(message.content, self._chat_config.notification_body_limit),
            NOTIFICATION_TAG,
            on_click,
        )
        loop = asyncio.get_running_loop()
        self._dismiss_timers[handle.id] = loop.call_later(
            self._chat_config.notification_dismiss_after, self._close, handle
        )
        self._logger.debug(
            "Notification dispatched",
            message_id=message.id,
            thread_id=message.thread_id,
        )
        return True

    def _close(self, handle: NotificationHandle) -> None:
        timer = self._dismiss_timers.pop(handle.id, None)
        if timer is not None:
            timer.cancel()
        self._platform.close(handle)

    async def enable_push(self) -> bool:
        """Turn push on, asking for permission if it was never asked.

        Returns:
            True if push ends up enabled; a refused prompt rolls the flag back.
        """
        await self._preferences.set_push_enabled(True)
        if await self._permission.request():
            return True
        await self._preferences.set_push_enabled(False)
        self._logger.info(
            "Push notifications unavailable", state=self._permission.state.value
        )
        return False

    async def disable_push(self) -> None:
        await self._preferences.set_push_enabled(False)

    async def enable_sound(self) -> None:
        await self._preferences.set_sound_enabled(True)

    async def disable_sound(self) -> None:
        await self._preferences.set_sound_enabled(False)
