"""Ephemeral presence payload."""

from datetime import datetime

from pydantic import BaseModel, Field

from famchat.domain.entities.types import utcnow


class PresenceEntry(BaseModel):
    """Payload a session tracks on the presence channel."""

    member_id: str
    full_name: str = ""
    avatar_url: str | None = None
    online_at: datetime = Field(default_factory=utcnow)
