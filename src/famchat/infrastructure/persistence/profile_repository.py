"""SQLite implementations of ProfileRepository and PreferenceRepository."""

from datetime import datetime

from sqlalchemy import update
from sqlmodel import col, select

from famchat.domain.entities.profile import Preference, Profile
from famchat.infrastructure.persistence.database import Database


class SqliteProfileRepository:
    """SQLite implementation of ProfileRepository."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def save(self, profile: Profile) -> None:
        """Save a profile (upsert), preserving ``created_at``."""
        async with self._database.get_session() as session:
            existing = await session.get(Profile, profile.member_id)
            if existing is None:
                session.add(profile)
                return
            existing.full_name = profile.full_name
            existing.avatar_url = profile.avatar_url
            existing.is_approved = profile.is_approved
            existing.last_seen_at = profile.last_seen_at
            session.add(existing)

    async def get(self, member_id: str) -> Profile | None:
        async with self._database.get_session() as session:
            return await session.get(Profile, member_id)

    async def get_many(self, member_ids: list[str]) -> dict[str, Profile]:
        """Fetch several profiles in a single query."""
        if not member_ids:
            return {}
        async with self._database.get_session() as session:
            statement = select(Profile).where(
                col(Profile.member_id).in_(set(member_ids))
            )
            result = await session.execute(statement)
            return {profile.member_id: profile for profile in result.scalars().all()}

    async def list_approved(self) -> list[Profile]:
        async with self._database.get_session() as session:
            statement = (
                select(Profile)
                .where(col(Profile.is_approved).is_(True))
                .order_by(col(Profile.created_at).asc())
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def touch_last_seen(self, member_id: str, seen_at: datetime) -> None:
        async with self._database.get_session() as session:
            await session.execute(
                update(Profile)
                .where(col(Profile.member_id) == member_id)
                .values(last_seen_at=seen_at)
            )


class SqlitePreferenceRepository:
    """SQLite implementation of PreferenceRepository."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def get(self, member_id: str, key: str) -> str | None:
        async with self._database.get_session() as session:
            preference = await session.get(Preference, (member_id, key))
            return preference.value if preference else None

    async def set(self, member_id: str, key: str, value: str) -> None:
        async with self._database.get_session() as session:
            preference = await session.get(Preference, (member_id, key))
            if preference is None:
                preference = Preference(member_id=member_id, key=key, value=value)
            else:
                preference.value = value
            session.add(preference)
