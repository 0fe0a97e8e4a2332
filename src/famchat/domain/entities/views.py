"""Read models returned to the presentation layer."""

from datetime import datetime

from pydantic import BaseModel

from famchat.domain.entities.message import Attachment
from famchat.domain.entities.thread import ThreadKind

DELETED_PLACEHOLDER = "Message deleted"


class MemberRef(BaseModel):
    """Roster entry with profile fields."""

    member_id: str
    full_name: str
    avatar_url: str | None = None


class SenderProfile(BaseModel):
    """Profile fields joined onto a message."""

    full_name: str
    avatar_url: str | None = None


class LastMessage(BaseModel):
    """Preview of the latest visible message of a thread."""

    content: str
    created_at: datetime
    sender_name: str


class ThreadSummary(BaseModel):
    """Thread annotated for the thread list."""

    id: str
    kind: ThreadKind
    title: str | None
    created_by: str
    created_at: datetime
    last_message: LastMessage | None = None
    members: list[MemberRef] = []

    @property
    def last_activity(self) -> datetime:
        """Return the last message time, else the creation time."""
        if self.last_message is not None:
            return self.last_message.created_at
        return self.created_at


class MessageView(BaseModel):
    """Message annotated with its sender profile."""

    id: str
    thread_id: str
    sender_id: str
    content: str
    created_at: datetime
    edited_at: datetime | None = None
    is_deleted: bool = False
    attachment: Attachment | None = None
    sender: SenderProfile

    @property
    def display_content(self) -> str:
        """Return the text shown for the message."""
        return DELETED_PLACEHOLDER if self.is_deleted else self.content


class Receipt(BaseModel):
    """Last-read timestamp of one thread member."""

    member_id: str
    last_read_at: datetime | None = None
