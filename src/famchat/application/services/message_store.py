"""Message store client: the per-thread message log."""

from collections.abc import Awaitable, Callable

import ulid
from structlog.stdlib import BoundLogger

from famchat.application.services.query_keys import ALL_THREAD_LISTS, message_list_key
from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.event import ChangeAction, ChangeEvent
from famchat.domain.entities.message import Attachment, AttachmentType, Message
from famchat.domain.entities.profile import UNKNOWN_MEMBER_NAME
from famchat.domain.entities.types import utcnow
from famchat.domain.entities.views import MessageView, SenderProfile
from famchat.domain.errors import AttachmentTooLargeError, ChatValidationError
from famchat.domain.repositories import MessageRepository, ProfileRepository
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.realtime import (
    RealtimeChannel,
    RealtimeHub,
    ReconnectingSubscription,
)
from famchat.infrastructure.storage import ObjectStorage

UpdateCallback = Callable[[], Awaitable[None]]


def attachment_type_for(content_type: str) -> AttachmentType:
    """Images are shown inline; everything else is a downloadable file."""
    if content_type.lower().startswith("image/"):
        return AttachmentType.IMAGE
    return AttachmentType.FILE


class MessageStoreClient:
    """Reads and writes the message log of threads.

    Writes invalidate the cached message list of the thread and every cached
    thread list so previews refresh. ``watch`` does the same for inserts made
    by other sessions.
    """

    def __init__(
        self,
        messages: MessageRepository,
        profiles: ProfileRepository,
        storage: ObjectStorage,
        hub: RealtimeHub,
        cache: QueryCache,
        chat_config: ChatConfig,
        realtime_config: RealtimeConfig,
        logger: BoundLogger,
    ) -> None:
        self._messages = messages
        self._profiles = profiles
        self._storage = storage
        self._hub = hub
        self._cache = cache
        self._chat_config = chat_config
        self._realtime_config = realtime_config
        self._logger = logger

    async def list_messages(self, thread_id: str) -> list[MessageView]:
        """Return the thread's messages, oldest first, with sender profiles.

        Deleted messages stay in place as placeholders with empty content.
        """
        return await self._cache.fetch(
            message_list_key(thread_id), lambda: self._load_messages(thread_id)
        )

    async def _load_messages(self, thread_id: str) -> list[MessageView]:
        messages = await self._messages.list_for_thread(thread_id)
        sender_ids = sorted({m.sender_id for m in messages})
        profiles = await self._profiles.get_many(sender_ids)

        views = []
        for message in messages:
            profile = profiles.get(message.sender_id)
            sender = (
                SenderProfile(
                    full_name=profile.full_name, avatar_url=profile.avatar_url
                )
                if profile is not None
                else SenderProfile(full_name=UNKNOWN_MEMBER_NAME, avatar_url=None)
            )
            views.append(
                MessageView(
                    id=message.id,
                    thread_id=message.thread_id,
                    sender_id=message.sender_id,
                    content=message.content,
                    created_at=message.created_at,
                    edited_at=message.edited_at,
                    is_deleted=message.is_deleted,
                    attachment=message.attachment,
                    sender=sender,
                )
            )
        return views

    async def send_message(
        self,
        thread_id: str,
        sender_id: str,
        content: str,
        attachment: Attachment | None = None,
    ) -> Message | None:
        """Append a message to a thread.

        Returns:
            The stored message, or None when there was nothing to send
            (blank content and no attachment).
        """
        text = content.strip()
        if not text and attachment is None:
            return None

        message = Message(
            thread_id=thread_id,
            sender_id=sender_id,
            content=text,
            attachment_url=attachment.url if attachment else None,
            attachment_type=attachment.type.value if attachment else None,
            attachment_name=attachment.name if attachment else None,
        )
        try:
            await self._messages.add(message)
        except Exception as e:
            self._logger.error(
                "Failed to send message", thread_id=thread_id, error=str(e)
            )
            raise
        self._invalidate(thread_id)
        self._logger.debug("Message sent", thread_id=thread_id, message_id=message.id)
        return message

    async def edit_message(
        self, message_id: str, editor_id: str, new_content: str
    ) -> Message | None:
        """Replace the content of an own message.

        Returns:
            The updated message, or None when ``new_content`` is blank.

        Raises:
            MessageNotFoundError: If the message does not exist.
            PermissionDeniedError: If the editor is not the author.
            MessageDeletedError: If the message was deleted.
        """
        text = new_content.strip()
        if not text:
            return None
        message = await self._messages.update_content(
            message_id, editor_id, text, utcnow()
        )
        self._invalidate(message.thread_id)
        return message

    async def delete_message(self, message_id: str, member_id: str) -> Message:
        """Soft-delete an own message.

        Raises:
            MessageNotFoundError: If the message does not exist.
            PermissionDeniedError: If the member is not the author.
        """
        message = await self._messages.soft_delete(message_id, member_id)
        self._invalidate(message.thread_id)
        self._logger.info("Message deleted", message_id=message_id)
        return message

    async def upload_attachment(
        self, thread_id: str, filename: str, data: bytes, content_type: str
    ) -> Attachment:
        """Store a file for a message and return its reference.

        Raises:
            AttachmentTooLargeError: If ``data`` exceeds the configured cap;
                nothing is uploaded.
            ChatValidationError: If ``filename`` is empty.
        """
        limit = self._chat_config.attachment_max_bytes
        if len(data) > limit:
            raise AttachmentTooLargeError(len(data), limit)
        name = filename.replace("/", "_").replace("\\", "_").strip()
        if not name:
            raise ChatValidationError("Attachment needs a file name")

        path = f"{thread_id}/{ulid.new()}-{name}"
        await self._storage.upload(path, data, content_type)
        return Attachment(
            url=self._storage.public_url(path),
            type=attachment_type_for(content_type),
            name=filename,
        )

    async def watch(
        self, thread_id: str, on_update: UpdateCallback | None = None
    ) -> ReconnectingSubscription:
        """Invalidate the thread's views whenever a message is inserted.

        Args:
            thread_id: Thread to watch.
            on_update: Called after each invalidation, typically to refetch.

        Returns:
            The subscription; close it when the thread view goes away.
        """

        async def on_insert(event: ChangeEvent) -> None:
            self._invalidate(thread_id)
            if on_update is not None:
                await on_update()

        def build_channel() -> RealtimeChannel:
            return self._hub.channel(f"messages-{thread_id}").on_change(
                Message.__tablename__,
                on_insert,
                action=ChangeAction.INSERT,
                where={"thread_id": thread_id},
            )

        subscription = ReconnectingSubscription(
            build_channel, self._realtime_config, self._logger
        )
        await subscription.start()
        return subscription

    def _invalidate(self, thread_id: str) -> None:
        self._cache.invalidate(message_list_key(thread_id))
        self._cache.invalidate(ALL_THREAD_LISTS)
