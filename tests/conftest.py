"""Shared fixtures for famchat tests."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import structlog
from structlog.stdlib import BoundLogger

from famchat.config.models import ChatConfig, RealtimeConfig
from famchat.domain.entities.event import ChangeEvent
from famchat.infrastructure.persistence import (
    ChangeSink,
    Database,
    SqliteMessageRepository,
    SqlitePreferenceRepository,
    SqliteProfileRepository,
    SqliteThreadRepository,
)
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.realtime import RealtimeHub


@pytest.fixture
def logger() -> BoundLogger:
    return structlog.stdlib.get_logger("test")


@pytest.fixture
async def database(tmp_path: Path) -> AsyncIterator[Database]:
    """Create a test database."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def hub(logger: BoundLogger) -> RealtimeHub:
    return RealtimeHub(logger=logger)


@pytest.fixture
def change_sink(hub: RealtimeHub) -> ChangeSink:
    """Publish committed changes straight to the hub."""

    async def publish(event: ChangeEvent) -> None:
        await hub.publish(event)

    return publish


@pytest.fixture
def thread_repo(database: Database, change_sink: ChangeSink) -> SqliteThreadRepository:
    return SqliteThreadRepository(database, change_sink)


@pytest.fixture
def message_repo(
    database: Database, change_sink: ChangeSink
) -> SqliteMessageRepository:
    return SqliteMessageRepository(database, change_sink)


@pytest.fixture
def profile_repo(database: Database) -> SqliteProfileRepository:
    return SqliteProfileRepository(database)


@pytest.fixture
def preference_repo(database: Database) -> SqlitePreferenceRepository:
    return SqlitePreferenceRepository(database)


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def chat_config() -> ChatConfig:
    return ChatConfig()


@pytest.fixture
def realtime_config() -> RealtimeConfig:
    return RealtimeConfig(
        reconnect_initial_delay=0.01,
        reconnect_max_delay=0.05,
        reconnect_multiplier=2,
    )
