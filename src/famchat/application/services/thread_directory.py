"""Thread directory: which threads a member belongs to, and how they look."""

from sqlalchemy.exc import IntegrityError
from structlog.stdlib import BoundLogger

from famchat.application.services.query_keys import ALL_THREAD_LISTS, thread_list_key
from famchat.config.models import ChatConfig
from famchat.domain.entities.message import Message
from famchat.domain.entities.profile import UNKNOWN_MEMBER_NAME, Profile
from famchat.domain.entities.thread import Thread, ThreadKind, direct_key_for
from famchat.domain.entities.views import LastMessage, MemberRef, ThreadSummary
from famchat.domain.errors import InvalidDirectThreadError
from famchat.domain.repositories import (
    MessageRepository,
    ProfileRepository,
    ThreadRepository,
)
from famchat.infrastructure.query_cache import QueryCache

DIRECT_CHAT_FALLBACK_TITLE = "Direct Chat"


def sort_threads(summaries: list[ThreadSummary]) -> list[ThreadSummary]:
    """Group threads first, then most recent activity first within a kind."""
    by_activity = sorted(summaries, key=lambda s: s.last_activity, reverse=True)
    return sorted(by_activity, key=lambda s: s.kind is not ThreadKind.GROUP)


class ThreadDirectory:
    """Resolves and maintains the threads of a member.

    Args:
        threads: Thread and membership repository.
        messages: Message repository, used for last-message previews.
        profiles: Profile repository, used for titles and rosters.
        cache: Shared query cache.
        config: Chat configuration (reserved group title).
        logger: Structured logger.
    """

    def __init__(
        self,
        threads: ThreadRepository,
        messages: MessageRepository,
        profiles: ProfileRepository,
        cache: QueryCache,
        config: ChatConfig,
        logger: BoundLogger,
    ) -> None:
        self._threads = threads
        self._messages = messages
        self._profiles = profiles
        self._cache = cache
        self._config = config
        self._logger = logger

    async def list_threads(self, member_id: str) -> list[ThreadSummary]:
        """Return every thread of the member, annotated and sorted.

        Store errors propagate; a member without memberships gets ``[]``.
        """
        return await self._cache.fetch(
            thread_list_key(member_id), lambda: self._load_threads(member_id)
        )

    async def _load_threads(self, member_id: str) -> list[ThreadSummary]:
        threads = await self._threads.list_for_member(member_id)
        if not threads:
            return []

        rosters: dict[str, list[str]] = {}
        for thread in threads:
            members = await self._threads.list_members(thread.id)
            rosters[thread.id] = [m.member_id for m in members]
        latest = {
            thread.id: await self._messages.latest_visible(thread.id)
            for thread in threads
        }

        wanted = {mid for roster in rosters.values() for mid in roster}
        wanted |= {m.sender_id for m in latest.values() if m is not None}
        profiles = await self._profiles.get_many(sorted(wanted))

        summaries = [
            self._summarize(
                thread, member_id, rosters[thread.id], latest[thread.id], profiles
            )
            for thread in threads
        ]
        return sort_threads(summaries)

    def _summarize(
        self,
        thread: Thread,
        member_id: str,
        roster: list[str],
        last: Message | None,
        profiles: dict[str, Profile],
    ) -> ThreadSummary:
        members = [_member_ref(mid, profiles.get(mid)) for mid in roster]

        title = thread.title
        if thread.kind is ThreadKind.DIRECT:
            other = next((m for m in members if m.member_id != member_id), None)
            if other is not None and other.member_id in profiles and other.full_name:
                title = other.full_name
            else:
                title = DIRECT_CHAT_FALLBACK_TITLE

        last_message = None
        if last is not None:
            sender = profiles.get(last.sender_id)
            sender_name = sender.full_name if sender is not None else ""
            last_message = LastMessage(
                content=last.content,
                created_at=last.created_at,
                sender_name=sender_name or UNKNOWN_MEMBER_NAME,
            )

        return ThreadSummary(
            id=thread.id,
            kind=thread.kind,
            title=title,
            created_by=thread.created_by,
            created_at=thread.created_at,
            last_message=last_message,
            members=members,
        )

    async def ensure_group_thread(self, member_id: str) -> str:
        """Return the family group thread, creating it when missing.

        The creator is added first, followed by every approved profile. A
        member missing from an existing thread joins it. Duplicates are left
        alone; see ``reconcile_group_threads``.
        """
        title = self._config.group_thread_title
        existing = await self._threads.list_group_threads(title)
        if existing:
            thread_id = existing[0].id
            if await self._threads.add_members(thread_id, [member_id]):
                self._cache.invalidate(ALL_THREAD_LISTS)
                self._logger.info(
                    "Joined group thread", thread_id=thread_id, member_id=member_id
                )
            return thread_id

        approved = await self._profiles.list_approved()
        member_ids = [member_id] + [
            p.member_id for p in approved if p.member_id != member_id
        ]
        thread = await self._threads.create(
            Thread(kind=ThreadKind.GROUP, title=title, created_by=member_id),
            member_ids,
        )
        self._cache.invalidate(ALL_THREAD_LISTS)
        self._logger.info(
            "Group thread created", thread_id=thread.id, members=len(member_ids)
        )
        return thread.id

    async def reconcile_group_threads(self) -> list[str]:
        """Keep the oldest reserved-title group thread and delete the rest.

        Deleting a thread removes its members and messages. Running the
        routine again without new duplicates deletes nothing.

        Returns:
            IDs of the deleted threads.
        """
        title = self._config.group_thread_title
        threads = await self._threads.list_group_threads(title)
        deleted: list[str] = []
        for duplicate in threads[1:]:
            if await self._threads.delete(duplicate.id):
                deleted.append(duplicate.id)
        if deleted:
            self._cache.invalidate(ALL_THREAD_LISTS)
            self._logger.warning(
                "Duplicate group threads removed",
                kept=threads[0].id,
                deleted=deleted,
            )
        return deleted

    async def open_direct_thread(self, member_id: str, other_id: str) -> str:
        """Return the direct thread of a member pair, creating it if needed.

        Raises:
            InvalidDirectThreadError: If both IDs are the same member.
        """
        if member_id == other_id:
            raise InvalidDirectThreadError("Cannot open a direct chat with yourself")

        key = direct_key_for(member_id, other_id)
        existing = await self._threads.find_direct(key)
        if existing is not None:
            return existing.id

        try:
            thread = await self._threads.create(
                Thread(kind=ThreadKind.DIRECT, created_by=member_id, direct_key=key),
                [member_id, other_id],
            )
        except IntegrityError:
            # Lost the race against the other member opening the same chat
            winner = await self._threads.find_direct(key)
            if winner is None:
                raise
            return winner.id

        self._cache.invalidate(ALL_THREAD_LISTS)
        self._logger.info("Direct thread created", thread_id=thread.id)
        return thread.id


def _member_ref(member_id: str, profile: Profile | None) -> MemberRef:
    if profile is None:
        return MemberRef(member_id=member_id, full_name=UNKNOWN_MEMBER_NAME)
    return MemberRef(
        member_id=member_id, full_name=profile.full_name, avatar_url=profile.avatar_url
    )
