"""ProfileRepository and PreferenceRepository protocols."""

from datetime import datetime
from typing import Protocol

from famchat.domain.entities.profile import Profile


class ProfileRepository(Protocol):
    """Repository protocol for member profiles."""

    async def save(self, profile: Profile) -> None:
        """Insert or update a profile."""
        ...

    async def get(self, member_id: str) -> Profile | None:
        """Get a profile by member ID."""
        ...

    async def get_many(self, member_ids: list[str]) -> dict[str, Profile]:
        """Get profiles keyed by member ID; unknown IDs are absent."""
        ...

    async def list_approved(self) -> list[Profile]:
        """Get every approved profile."""
        ...

    async def touch_last_seen(self, member_id: str, seen_at: datetime) -> None:
        """Record the last time the member was seen online."""
        ...


class PreferenceRepository(Protocol):
    """Repository protocol for persisted preference flags."""

    async def get(self, member_id: str, key: str) -> str | None:
        """Get a raw preference value."""
        ...

    async def set(self, member_id: str, key: str, value: str) -> None:
        """Store a raw preference value."""
        ...
