"""Tests for NotificationDispatcher."""

import asyncio
from array import array
from typing import Any

import pytest
from structlog.stdlib import BoundLogger

from famchat.application.services.notification_dispatcher import (
    NOTIFICATION_TAG,
    NotificationDispatcher,
    NotificationOutcome,
    SuppressionReason,
    ViewContext,
    truncate_body,
)
from famchat.application.services.notification_preferences import (
    NotificationPermissionGate,
    NotificationPreferences,
)
from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.message import Message
from famchat.domain.entities.profile import Profile
from famchat.domain.entities.thread import Thread
from famchat.infrastructure.notifications import (
    ChimePlayer,
    HeadlessWindow,
    LoggingNotificationPlatform,
    PlatformPermission,
)
from famchat.infrastructure.persistence import (
    SqliteMessageRepository,
    SqlitePreferenceRepository,
    SqliteProfileRepository,
    SqliteThreadRepository,
)
from famchat.infrastructure.realtime import RealtimeHub


class RecordingSink:
    """Audio sink that counts plays."""

    def __init__(self, fail: bool = False) -> None:
        self.plays = 0
        self.fail = fail

    async def play(self, samples: array, sample_rate: int) -> None:
        if self.fail:
            raise OSError("audio device busy")
        self.plays += 1


class Harness:
    """A dispatcher for alice with its collaborators exposed."""

    def __init__(
        self,
        hub: RealtimeHub,
        profiles: SqliteProfileRepository,
        preference_repo: SqlitePreferenceRepository,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
        permission: PlatformPermission = PlatformPermission.GRANTED,
        prompt_answer: PlatformPermission = PlatformPermission.GRANTED,
        sink: RecordingSink | None = None,
    ) -> None:
        self.platform = LoggingNotificationPlatform(
            logger, permission=permission, prompt_answer=prompt_answer
        )
        self.window = HeadlessWindow(focused=False)
        self.sink = sink or RecordingSink()
        self.preferences = NotificationPreferences(preference_repo, "alice")
        self.dispatcher = NotificationDispatcher(
            member_id="alice",
            profiles=profiles,
            preferences=self.preferences,
            permission=NotificationPermissionGate(self.platform, logger),
            platform=self.platform,
            window=self.window,
            chime=ChimePlayer(self.sink, sample_rate=8000),
            hub=hub,
            chat_config=ChatConfig(notification_dismiss_after=0.05),
            realtime_config=realtime_config,
            logger=logger,
        )


@pytest.fixture
async def profiles(profile_repo: SqliteProfileRepository) -> SqliteProfileRepository:
    await profile_repo.save(Profile(member_id="alice", full_name="Alice"))
    await profile_repo.save(Profile(member_id="bob", full_name="Bob"))
    return profile_repo


@pytest.fixture
def harness(
    hub: RealtimeHub,
    profiles: SqliteProfileRepository,
    preference_repo: SqlitePreferenceRepository,
    realtime_config: RealtimeConfig,
    logger: BoundLogger,
) -> Harness:
    return Harness(hub, profiles, preference_repo, realtime_config, logger)


def record(
    message_id: str = "m1",
    thread_id: str = "t1",
    sender_id: str = "bob",
    content: str = "dinner at 7",
    is_deleted: bool = False,
) -> dict[str, Any]:
    return {
        "id": message_id,
        "thread_id": thread_id,
        "sender_id": sender_id,
        "content": content,
        "is_deleted": is_deleted,
        "created_at": "2024-05-01T12:00:00+00:00",
    }


class TestTruncateBody:
    """Tests for truncate_body."""

    def test_short_content_untouched(self) -> None:
        assert truncate_body("hello", 80) == "hello"
        assert truncate_body("x" * 80, 80) == "x" * 80

    def test_long_content_cut(self) -> None:
        assert truncate_body("x" * 81, 80) == "x" * 80 + "…"


class TestSuppression:
    """Messages that produce neither sound nor notification."""

    async def test_own_message(self, harness: Harness) -> None:
        outcome = await harness.dispatcher.handle_insert(record(sender_id="alice"))

        assert outcome == NotificationOutcome(suppressed=SuppressionReason.OWN_MESSAGE)
        assert harness.sink.plays == 0

    async def test_deleted_message(self, harness: Harness) -> None:
        outcome = await harness.dispatcher.handle_insert(record(is_deleted=True))

        assert outcome.suppressed is SuppressionReason.DELETED

    async def test_active_thread(self, harness: Harness) -> None:
        """The open thread gets no sound and no notification."""
        harness.dispatcher.set_active_thread("t1")

        outcome = await harness.dispatcher.handle_insert(record())

        assert outcome.suppressed is SuppressionReason.ACTIVE_THREAD
        assert harness.sink.plays == 0
        assert harness.platform.shown == []

    async def test_other_thread_while_one_is_open(self, harness: Harness) -> None:
        harness.dispatcher.update_context(ViewContext(active_thread_id="t2"))

        outcome = await harness.dispatcher.handle_insert(record())

        assert outcome.suppressed is None
        assert outcome.sound_played

    async def test_duplicate_delivery(self, harness: Harness) -> None:
        first = await harness.dispatcher.handle_insert(record())
        second = await harness.dispatcher.handle_insert(record())

        assert first.suppressed is None
        assert second.suppressed is SuppressionReason.DUPLICATE
        assert harness.sink.plays == 1
        assert len(harness.platform.shown) == 1


class TestSound:
    """Chime behaviour."""

    async def test_chime_plays_even_when_focused(self, harness: Harness) -> None:
        harness.window.focused = True

        outcome = await harness.dispatcher.handle_insert(record())

        assert outcome == NotificationOutcome(sound_played=True, push_shown=False)
        assert harness.sink.plays == 1

    async def test_sound_disabled(self, harness: Harness) -> None:
        await harness.dispatcher.disable_sound()

        outcome = await harness.dispatcher.handle_insert(record())

        assert not outcome.sound_played
        assert outcome.push_shown
        assert harness.sink.plays == 0

        await harness.dispatcher.enable_sound()
        assert await harness.preferences.sound_enabled()

    async def test_chime_failure_does_not_block_push(
        self,
        hub: RealtimeHub,
        profiles: SqliteProfileRepository,
        preference_repo: SqlitePreferenceRepository,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        harness = Harness(
            hub,
            profiles,
            preference_repo,
            realtime_config,
            logger,
            sink=RecordingSink(fail=True),
        )

        outcome = await harness.dispatcher.handle_insert(record())

        assert outcome == NotificationOutcome(sound_played=False, push_shown=True)


class TestPush:
    """Platform notification behaviour."""

    async def test_title_and_body(self, harness: Harness) -> None:
        long_text = "a" * 100

        await harness.dispatcher.handle_insert(record(content=long_text))

        [handle] = harness.platform.shown
        assert handle.title == "💬 Bob"
        assert handle.body == "a" * 80 + "…"
        assert handle.tag == NOTIFICATION_TAG

    async def test_unknown_sender_fallback(self, harness: Harness) -> None:
        await harness.dispatcher.handle_insert(record(sender_id="ghost"))

        assert harness.platform.shown[0].title == "💬 Family Member"

    async def test_not_shown_when_push_disabled(self, harness: Harness) -> None:
        await harness.dispatcher.disable_push()

        outcome = await harness.dispatcher.handle_insert(record())

        assert outcome == NotificationOutcome(sound_played=True, push_shown=False)
        assert harness.platform.shown == []

    async def test_not_shown_without_permission(
        self,
        hub: RealtimeHub,
        profiles: SqliteProfileRepository,
        preference_repo: SqlitePreferenceRepository,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        """The dispatcher never prompts on its own."""
        harness = Harness(
            hub,
            profiles,
            preference_repo,
            realtime_config,
            logger,
            permission=PlatformPermission.DEFAULT,
        )

        outcome = await harness.dispatcher.handle_insert(record())

        assert not outcome.push_shown
        assert harness.platform.prompt_count == 0

    async def test_click_focuses_and_closes(self, harness: Harness) -> None:
        await harness.dispatcher.handle_insert(record())
        [handle] = harness.platform.shown

        assert handle.on_click is not None
        handle.on_click()

        assert harness.window.focused
        assert harness.window.focus_requests == 1
        assert handle.closed

    async def test_auto_dismiss(self, harness: Harness) -> None:
        await harness.dispatcher.handle_insert(record())
        [handle] = harness.platform.shown
        assert not handle.closed

        await asyncio.sleep(0.1)

        assert handle.closed

    async def test_stop_cancels_dismiss_timers(self, harness: Harness) -> None:
        await harness.dispatcher.handle_insert(record())
        [handle] = harness.platform.shown

        await harness.dispatcher.stop()
        await asyncio.sleep(0.1)

        assert not handle.closed


class TestEnablePush:
    """Tests for enable_push."""

    async def test_prompt_granted(
        self,
        hub: RealtimeHub,
        profiles: SqliteProfileRepository,
        preference_repo: SqlitePreferenceRepository,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        harness = Harness(
            hub,
            profiles,
            preference_repo,
            realtime_config,
            logger,
            permission=PlatformPermission.DEFAULT,
        )
        await harness.dispatcher.disable_push()

        assert await harness.dispatcher.enable_push() is True
        assert await harness.preferences.push_enabled()
        assert harness.platform.prompt_count == 1

    async def test_prompt_denied_rolls_back(
        self,
        hub: RealtimeHub,
        profiles: SqliteProfileRepository,
        preference_repo: SqlitePreferenceRepository,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        harness = Harness(
            hub,
            profiles,
            preference_repo,
            realtime_config,
            logger,
            permission=PlatformPermission.DEFAULT,
            prompt_answer=PlatformPermission.DENIED,
        )

        assert await harness.dispatcher.enable_push() is False
        assert await harness.preferences.push_enabled() is False

        assert await harness.dispatcher.enable_push() is False
        assert harness.platform.prompt_count == 1


class TestSubscription:
    """Live delivery through the realtime hub."""

    async def test_inserts_are_dispatched(
        self,
        harness: Harness,
        thread_repo: SqliteThreadRepository,
        message_repo: SqliteMessageRepository,
    ) -> None:
        thread = await thread_repo.create(
            Thread(title="Family Group Chat", created_by="alice"), ["alice", "bob"]
        )
        await harness.dispatcher.start()
        try:
            await message_repo.add(
                Message(thread_id=thread.id, sender_id="bob", content="hello")
            )
            await message_repo.add(
                Message(thread_id=thread.id, sender_id="alice", content="hi bob")
            )
        finally:
            await harness.dispatcher.stop()

        assert harness.sink.plays == 1
        assert [h.body for h in harness.platform.shown] == ["hello"]

    async def test_stopped_dispatcher_ignores_inserts(
        self,
        harness: Harness,
        thread_repo: SqliteThreadRepository,
        message_repo: SqliteMessageRepository,
    ) -> None:
        thread = await thread_repo.create(
            Thread(title="Family Group Chat", created_by="alice"), ["alice", "bob"]
        )
        await harness.dispatcher.start()
        await harness.dispatcher.stop()

        await message_repo.add(
            Message(thread_id=thread.id, sender_id="bob", content="x")
        )

        assert harness.sink.plays == 0
