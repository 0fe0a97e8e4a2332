"""Tests for MessageStoreClient."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from structlog.stdlib import BoundLogger

from famchat.application.services.message_store import (
    MessageStoreClient,
    attachment_type_for,
)
from famchat.application.services.query_keys import message_list_key
from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.message import Attachment, AttachmentType, Message
from famchat.domain.entities.profile import Profile
from famchat.domain.entities.thread import Thread
from famchat.domain.entities.views import DELETED_PLACEHOLDER
from famchat.domain.errors import (
    AttachmentTooLargeError,
    ChatValidationError,
    MessageDeletedError,
    PermissionDeniedError,
)
from famchat.infrastructure.persistence import (
    SqliteMessageRepository,
    SqliteProfileRepository,
    SqliteThreadRepository,
)
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.realtime import RealtimeHub
from famchat.infrastructure.storage import LocalObjectStorage

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage(tmp_path: Path) -> LocalObjectStorage:
    return LocalObjectStorage(tmp_path / "storage", "http://files.local")


@pytest.fixture
def store(
    message_repo: SqliteMessageRepository,
    profile_repo: SqliteProfileRepository,
    storage: LocalObjectStorage,
    hub: RealtimeHub,
    cache: QueryCache,
    realtime_config: RealtimeConfig,
    logger: BoundLogger,
) -> MessageStoreClient:
    return MessageStoreClient(
        message_repo,
        profile_repo,
        storage,
        hub,
        cache,
        ChatConfig(attachment_max_bytes=1024),
        realtime_config,
        logger,
    )


@pytest.fixture
async def thread(
    thread_repo: SqliteThreadRepository, profile_repo: SqliteProfileRepository
) -> Thread:
    await profile_repo.save(Profile(member_id="alice", full_name="Alice"))
    await profile_repo.save(Profile(member_id="bob", full_name="Bob"))
    return await thread_repo.create(
        Thread(title="Family Group Chat", created_by="alice"), ["alice", "bob"]
    )


class TestAttachmentType:
    """Tests for attachment_type_for."""

    def test_image(self) -> None:
        assert attachment_type_for("image/png") is AttachmentType.IMAGE
        assert attachment_type_for("IMAGE/JPEG") is AttachmentType.IMAGE

    def test_file(self) -> None:
        assert attachment_type_for("application/pdf") is AttachmentType.FILE


class TestSendMessage:
    """Tests for sending messages."""

    async def test_blank_message_is_not_sent(
        self,
        store: MessageStoreClient,
        thread: Thread,
        message_repo: SqliteMessageRepository,
    ) -> None:
        """Whitespace-only content without attachment is a no-op."""
        assert await store.send_message(thread.id, "alice", "   \n") is None
        assert await message_repo.list_for_thread(thread.id) == []

    async def test_content_is_trimmed(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        message = await store.send_message(thread.id, "alice", "  hello  ")

        assert message is not None
        assert message.content == "hello"

    async def test_attachment_only(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        """An attachment is enough to send with empty content."""
        attachment = Attachment(
            url="http://files.local/x.png", type=AttachmentType.IMAGE, name="x.png"
        )

        message = await store.send_message(thread.id, "alice", "", attachment)

        assert message is not None
        assert message.content == ""
        assert message.attachment == attachment

    async def test_send_invalidates_list(
        self, store: MessageStoreClient, thread: Thread, cache: QueryCache
    ) -> None:
        await store.list_messages(thread.id)
        assert message_list_key(thread.id) in cache

        await store.send_message(thread.id, "bob", "hi")

        assert message_list_key(thread.id) not in cache
        assert [m.content for m in await store.list_messages(thread.id)] == ["hi"]


class TestListMessages:
    """Tests for listing messages."""

    async def test_order_and_sender_profiles(
        self,
        store: MessageStoreClient,
        thread: Thread,
        message_repo: SqliteMessageRepository,
    ) -> None:
        """Messages come oldest first with the sender's profile."""
        await message_repo.add(
            Message(
                thread_id=thread.id,
                sender_id="bob",
                content="second",
                created_at=BASE + timedelta(minutes=1),
            )
        )
        await message_repo.add(
            Message(
                thread_id=thread.id, sender_id="alice", content="first", created_at=BASE
            )
        )
        await message_repo.add(
            Message(
                thread_id=thread.id,
                sender_id="stranger",
                content="third",
                created_at=BASE + timedelta(minutes=2),
            )
        )

        views = await store.list_messages(thread.id)

        assert [v.content for v in views] == ["first", "second", "third"]
        assert [v.sender.full_name for v in views] == ["Alice", "Bob", "Unknown"]

    async def test_deleted_message_keeps_position(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        first = await store.send_message(thread.id, "alice", "one")
        await store.send_message(thread.id, "bob", "two")
        assert first is not None

        await store.delete_message(first.id, "alice")
        views = await store.list_messages(thread.id)

        assert [v.id for v in views][0] == first.id
        assert views[0].is_deleted is True
        assert views[0].content == ""
        assert views[0].display_content == DELETED_PLACEHOLDER
        assert views[1].display_content == "two"

    async def test_edit_keeps_position(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        first = await store.send_message(thread.id, "alice", "one")
        second = await store.send_message(thread.id, "bob", "two")
        assert first is not None and second is not None

        edited = await store.edit_message(first.id, "alice", " uno ")
        views = await store.list_messages(thread.id)

        assert edited is not None
        assert edited.edited_at is not None
        assert [v.id for v in views] == [first.id, second.id]
        assert views[0].content == "uno"
        assert views[0].created_at == first.created_at

    async def test_blank_edit_is_ignored(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        message = await store.send_message(thread.id, "alice", "keep")
        assert message is not None

        assert await store.edit_message(message.id, "alice", "  ") is None
        assert (await store.list_messages(thread.id))[0].content == "keep"

    async def test_edit_of_others_message_denied(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        message = await store.send_message(thread.id, "alice", "mine")
        assert message is not None

        with pytest.raises(PermissionDeniedError):
            await store.edit_message(message.id, "bob", "yours")

    async def test_deleted_message_cannot_be_edited(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        """A soft-deleted message stays cleared."""
        message = await store.send_message(thread.id, "alice", "oops")
        assert message is not None
        await store.delete_message(message.id, "alice")

        with pytest.raises(MessageDeletedError):
            await store.edit_message(message.id, "alice", "resurrected")

        views = await store.list_messages(thread.id)
        assert views[0].is_deleted is True
        assert views[0].content == ""
        assert views[0].edited_at is None


class TestUploadAttachment:
    """Tests for attachment uploads."""

    async def test_too_large(
        self, store: MessageStoreClient, thread: Thread, tmp_path: Path
    ) -> None:
        """Oversized files are rejected before anything is stored."""
        with pytest.raises(AttachmentTooLargeError) as exc_info:
            await store.upload_attachment(
                thread.id, "big.bin", b"x" * 1025, "application/octet-stream"
            )

        assert exc_info.value.limit == 1024
        assert not (tmp_path / "storage").exists()

    async def test_image_upload(
        self, store: MessageStoreClient, thread: Thread, tmp_path: Path
    ) -> None:
        attachment = await store.upload_attachment(
            thread.id, "photo.png", b"\x89PNG", "image/png"
        )

        assert attachment.type is AttachmentType.IMAGE
        assert attachment.name == "photo.png"
        assert attachment.url.startswith(f"http://files.local/{thread.id}/")
        assert attachment.url.endswith("-photo.png")
        stored = list((tmp_path / "storage" / thread.id).iterdir())
        assert len(stored) == 1
        assert stored[0].read_bytes() == b"\x89PNG"

    async def test_file_upload(self, store: MessageStoreClient, thread: Thread) -> None:
        attachment = await store.upload_attachment(
            thread.id, "notes.pdf", b"%PDF", "application/pdf"
        )

        assert attachment.type is AttachmentType.FILE

    async def test_empty_name_rejected(
        self, store: MessageStoreClient, thread: Thread
    ) -> None:
        with pytest.raises(ChatValidationError):
            await store.upload_attachment(thread.id, "  ", b"x", "text/plain")


class TestWatch:
    """Tests for watching a thread."""

    async def test_insert_invalidates_and_notifies(
        self,
        store: MessageStoreClient,
        thread: Thread,
        message_repo: SqliteMessageRepository,
        cache: QueryCache,
    ) -> None:
        """An insert from another session drops the cached list."""
        updates: list[bool] = []

        async def on_update() -> None:
            updates.append(True)

        subscription = await store.watch(thread.id, on_update)
        await store.list_messages(thread.id)

        await message_repo.add(
            Message(thread_id=thread.id, sender_id="bob", content="hey")
        )

        assert updates == [True]
        assert message_list_key(thread.id) not in cache
        await subscription.close()

    async def test_other_threads_ignored(
        self,
        store: MessageStoreClient,
        thread: Thread,
        thread_repo: SqliteThreadRepository,
        message_repo: SqliteMessageRepository,
    ) -> None:
        other = await thread_repo.create(
            Thread(title="Other", created_by="bob"), ["bob"]
        )
        updates: list[bool] = []

        async def on_update() -> None:
            updates.append(True)

        subscription = await store.watch(thread.id, on_update)
        await message_repo.add(
            Message(thread_id=other.id, sender_id="bob", content="x")
        )

        assert updates == []
        await subscription.close()

    async def test_closed_watch_stops(
        self,
        store: MessageStoreClient,
        thread: Thread,
        message_repo: SqliteMessageRepository,
    ) -> None:
        updates: list[bool] = []

        async def on_update() -> None:
            updates.append(True)

        subscription = await store.watch(thread.id, on_update)
        await subscription.close()
        await message_repo.add(
            Message(thread_id=thread.id, sender_id="bob", content="x")
        )

        assert updates == []
