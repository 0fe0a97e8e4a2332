"""Repository protocols."""

from famchat.domain.repositories.message_repository import MessageRepository
from famchat.domain.repositories.profile_repository import (
    PreferenceRepository,
    ProfileRepository,
)
from famchat.domain.repositories.thread_repository import ThreadRepository

__all__ = [
    "MessageRepository",
    "PreferenceRepository",
    "ProfileRepository",
    "ThreadRepository",
]
