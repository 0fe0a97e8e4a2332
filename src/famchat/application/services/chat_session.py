"""Chat session: wires the chat services together for one signed-in member."""

from collections.abc import Awaitable, Callable

from structlog.stdlib import BoundLogger

from famchat.application.services.message_store import MessageStoreClient
from famchat.application.services.notification_dispatcher import (
    NotificationDispatcher,
    ViewContext,
)
from famchat.application.services.notification_preferences import (
    NotificationPermissionGate,
    NotificationPreferences,
)
from famchat.application.services.presence_tracker import PresenceTracker
from famchat.application.services.read_receipts import ReadReceiptTracker
from famchat.application.services.thread_directory import ThreadDirectory
from famchat.application.services.unread_counter import UnreadCounter
from famchat.config.models import AppConfig
from famchat.domain.entities.views import Receipt
from famchat.infrastructure.notifications import (
    AppWindow,
    AudioSink,
    ChimePlayer,
    HeadlessWindow,
    LoggingAudioSink,
    LoggingNotificationPlatform,
    NotificationPlatform,
)
from famchat.infrastructure.persistence import (
    ChangeSink,
    Database,
    SqliteMessageRepository,
    SqlitePreferenceRepository,
    SqliteProfileRepository,
    SqliteThreadRepository,
)
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.realtime import RealtimeHub, ReconnectingSubscription
from famchat.infrastructure.scheduling import PeriodicTask
from famchat.infrastructure.storage import LocalObjectStorage, ObjectStorage

ReceiptsCallback = Callable[[list[Receipt]], Awaitable[None]]


class ChatSession:
    """All chat services of one member, sharing a cache, hub and database.

    Platform pieces default to headless implementations that only log.

    Args:
        config: Application configuration; ``config.member`` is the member.
        database: Initialised database.
        hub: Realtime hub.
        logger: Structured logger.
        change_sink: Receives row changes committed by this session.
        platform: Notification platform.
        window: Application window.
        audio_sink: Chime output.
        storage: Attachment storage; defaults to local storage from config.
    """

    def __init__(
        self,
        config: AppConfig,
        database: Database,
        hub: RealtimeHub,
        logger: BoundLogger,
        change_sink: ChangeSink | None = None,
        platform: NotificationPlatform | None = None,
        window: AppWindow | None = None,
        audio_sink: AudioSink | None = None,
        storage: ObjectStorage | None = None,
    ) -> None:
        self.member_id = config.member.member_id
        self._logger = logger
        self.cache = QueryCache()

        self.threads = SqliteThreadRepository(database, change_sink)
        self.messages = SqliteMessageRepository(database, change_sink)
        self.profiles = SqliteProfileRepository(database)
        self.preferences = SqlitePreferenceRepository(database)

        self.directory = ThreadDirectory(
            self.threads, self.messages, self.profiles, self.cache, config.chat, logger
        )
        self.message_store = MessageStoreClient(
            self.messages,
            self.profiles,
            storage
            or LocalObjectStorage(config.storage.root, config.storage.public_base_url),
            hub,
            self.cache,
            config.chat,
            config.realtime,
            logger,
        )
        self.receipts = ReadReceiptTracker(
            self.threads, self.cache, config.chat, logger
        )
        self.unread = UnreadCounter(
            self.threads,
            self.messages,
            hub,
            self.cache,
            config.chat,
            config.realtime,
            logger,
        )
        self.presence = PresenceTracker(
            hub, self.profiles, config.chat, config.realtime, logger
        )

        platform = platform or LoggingNotificationPlatform(logger)
        self.notifications = NotificationDispatcher(
            member_id=self.member_id,
            profiles=self.profiles,
            preferences=NotificationPreferences(self.preferences, self.member_id),
            permission=NotificationPermissionGate(platform, logger),
            platform=platform,
            window=window or HeadlessWindow(),
            chime=ChimePlayer(audio_sink or LoggingAudioSink(logger)),
            hub=hub,
            chat_config=config.chat,
            realtime_config=config.realtime,
            logger=logger,
            context=ViewContext(),
        )

        self._active_thread_id: str | None = None
        self._thread_watch: ReconnectingSubscription | None = None
        self._receipts_watch: PeriodicTask | None = None
        self._started = False

    @property
    def active_thread_id(self) -> str | None:
        return self._active_thread_id

    async def start(self) -> str:
        """Bring the session online.

        Calling it again on a started session only returns the group thread.

        Returns:
            ID of the family group thread.
        """
        group_thread_id = await self.directory.ensure_group_thread(self.member_id)
        if self._started:
            return group_thread_id
        await self.presence.start(self.member_id)
        await self.unread.start(self.member_id)
        await self.notifications.start()
        self._started = True
        self._logger.info(
            "Chat session started",
            member_id=self.member_id,
            group_thread_id=group_thread_id,
        )
        return group_thread_id

    async def open_thread(
        self, thread_id: str, on_receipts: ReceiptsCallback | None = None
    ) -> None:
        """Make ``thread_id`` the thread on screen.

        The thread is marked read now and again whenever a message arrives
        while it stays open. Notifications for it are suppressed.
        """
        await self.close_thread()
        self._active_thread_id = thread_id
        self.notifications.set_active_thread(thread_id)

        async def on_message() -> None:
            await self.receipts.mark_thread_read(thread_id, self.member_id)
            await self.unread.refresh()

        self._thread_watch = await self.message_store.watch(thread_id, on_message)

        async def on_update(receipts: list[Receipt]) -> None:
            if on_receipts is not None:
                await on_receipts(receipts)

        self._receipts_watch = self.receipts.watch_receipts(
            thread_id, self.member_id, on_update
        )
        await on_message()

    async def close_thread(self) -> None:
        """Leave the open thread, if any."""
        if self._receipts_watch is not None:
            await self._receipts_watch.stop()
            self._receipts_watch = None
        if self._thread_watch is not None:
            await self._thread_watch.close()
            self._thread_watch = None
        if self._active_thread_id is not None:
            self._active_thread_id = None
            self.notifications.set_active_thread(None)

    async def stop(self) -> None:
        """Release every subscription and timer of the session."""
        await self.close_thread()
        await self.notifications.stop()
        await self.unread.stop()
        await self.presence.stop()
        if self._started:
            self._logger.info("Chat session stopped", member_id=self.member_id)
        self._started = False
