"""Profile and preference entities."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from famchat.domain.entities.types import UTCDateTime, utcnow

UNKNOWN_MEMBER_NAME = "Unknown"


class Profile(SQLModel, table=True):
    """Public profile of a family member."""

    __tablename__ = "profiles"

    member_id: str = Field(primary_key=True)
    full_name: str = ""
    avatar_url: str | None = None
    is_approved: bool = Field(default=False, index=True)
    last_seen_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Preference(SQLModel, table=True):
    """Persisted per-member preference flag."""

    __tablename__ = "preferences"

    member_id: str = Field(primary_key=True)
    key: str = Field(primary_key=True)
    value: str
