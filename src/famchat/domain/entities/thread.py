"""Thread and membership entities."""

from datetime import datetime
from enum import Enum

import ulid
from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from famchat.domain.entities.types import UTCDateTime, utcnow


class ThreadKind(str, Enum):
    """Conversation kind."""

    GROUP = "group"
    DIRECT = "direct"


def direct_key_for(member_a: str, member_b: str) -> str:
    """Return the order-independent key of a member pair."""
    first, second = sorted((member_a, member_b))
    return f"{first}:{second}"


class Thread(SQLModel, table=True):
    """Conversation thread.

    Attributes:
        id: ULID of the thread.
        kind: Group or direct conversation.
        title: Display title. Direct threads leave it empty and derive the
            title from the other participant.
        created_by: Member that created the thread.
        created_at: Creation time.
        direct_key: Sorted member pair for direct threads, unique across the
            table so a pair can never own two direct threads.
    """

    __tablename__ = "chat_threads"
    __table_args__ = (Index("idx_thread_kind_title", "kind", "title", "created_at"),)

    id: str = Field(default_factory=lambda: str(ulid.new()), primary_key=True)
    kind: ThreadKind = Field(default=ThreadKind.GROUP)
    title: str | None = Field(default=None)
    created_by: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    direct_key: str | None = Field(default=None, unique=True)


class ThreadMember(SQLModel, table=True):
    """Membership of a member in a thread.

    ``last_read_at`` is None until the member reads the thread for the first
    time.
    """

    __tablename__ = "chat_thread_members"

    thread_id: str = Field(primary_key=True, foreign_key="chat_threads.id")
    member_id: str = Field(primary_key=True, index=True)
    joined_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    last_read_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
