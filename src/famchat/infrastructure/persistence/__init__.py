"""Persistence infrastructure."""

from famchat.infrastructure.persistence.change_feed import ChangeSink
from famchat.infrastructure.persistence.database import Database
from famchat.infrastructure.persistence.message_repository import (
    SqliteMessageRepository,
)
from famchat.infrastructure.persistence.profile_repository import (
    SqlitePreferenceRepository,
    SqliteProfileRepository,
)
from famchat.infrastructure.persistence.thread_repository import (
    SqliteThreadRepository,
)

__all__ = [
    "ChangeSink",
    "Database",
    "SqliteMessageRepository",
    "SqlitePreferenceRepository",
    "SqliteProfileRepository",
    "SqliteThreadRepository",
]
