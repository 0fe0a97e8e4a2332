"""Message entity."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import ulid
from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from famchat.domain.entities.types import UTCDateTime, utcnow

class AttachmentType(str, Enum):
    """Kind of file attached to a message."""

    IMAGE = "image"
    FILE = "file"


@dataclass(frozen=True)
class Attachment:
    """Single attachment reference carried by a message."""

    url: str
    type: AttachmentType
    name: str


class Message(SQLModel, table=True):
    """Chat message.

    Messages are append-only: ``created_at`` never changes and defines the
    order inside a thread. Edits touch ``content`` and ``edited_at``; deletes
    clear ``content`` and set ``is_deleted`` while the row stays in place.

    Attributes:
        id: ULID of the message.
        thread_id: Owning thread.
        sender_id: Author.
        content: Text, empty when only an attachment was sent or deleted.
        created_at: Send time.
        edited_at: Last edit time.
        is_deleted: Soft-delete flag.
        attachment_url: Public URL of the attachment.
        attachment_type: ``image`` or ``file``.
        attachment_name: Display name of the attachment.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_message_thread_created", "thread_id", "created_at"),
        Index("idx_message_thread_sender", "thread_id", "sender_id"),
    )

    id: str = Field(default_factory=lambda: str(ulid.new()), primary_key=True)
    thread_id: str = Field(foreign_key="chat_threads.id")
    sender_id: str
    content: str = ""
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    edited_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    is_deleted: bool = Field(default=False)
    attachment_url: str | None = None
    attachment_type: str | None = None
    attachment_name: str | None = None

    @property
    def attachment(self) -> Attachment | None:
        """Return the attachment reference, if any."""
        if self.attachment_url is None:
            return None
        return Attachment(
            url=self.attachment_url,
            type=AttachmentType(self.attachment_type or AttachmentType.FILE.value),
            name=self.attachment_name or "",
        )
