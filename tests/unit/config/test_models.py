"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from famchat.config.models import (
    AppConfig,
    ChatConfig,
    DatabaseConfig,
    LoggingConfig,
    RealtimeConfig,
)


class TestChatConfig:
    """Tests for ChatConfig defaults."""

    def test_defaults(self) -> None:
        """Poll intervals and limits default to the product values."""
        config = ChatConfig()

        assert config.group_thread_title == "Family Group Chat"
        assert config.attachment_max_bytes == 10 * 1024 * 1024
        assert config.receipts_poll_interval == 10
        assert config.unread_poll_interval == 30
        assert config.last_seen_interval == 60
        assert config.notification_dismiss_after == 5
        assert config.notification_body_limit == 80


class TestRealtimeConfig:
    """Tests for RealtimeConfig defaults."""

    def test_defaults(self) -> None:
        """Reconnects back off from 1 s to 30 s and never give up."""
        config = RealtimeConfig()

        assert config.reconnect_initial_delay == 1
        assert config.reconnect_max_delay == 30
        assert config.reconnect_multiplier == 2
        assert config.reconnect_max_attempts is None


class TestLoggingConfig:
    """Tests for LoggingConfig validation."""

    def test_invalid_level(self) -> None:
        """Unknown levels are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="VERBOSE")  # type: ignore[arg-type]

    def test_invalid_format(self) -> None:
        """Unknown formats are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")  # type: ignore[arg-type]


class TestAppConfig:
    """Tests for AppConfig."""

    def test_minimal(self) -> None:
        """Only the member is required."""
        config = AppConfig(member={"member_id": "alice"})  # type: ignore[arg-type]

        assert config.member.member_id == "alice"
        assert config.database == DatabaseConfig()
        assert config.database.url.startswith("sqlite+aiosqlite://")

    def test_member_id_required(self) -> None:
        """The member section must name a member."""
        with pytest.raises(ValidationError):
            AppConfig(member={})  # type: ignore[arg-type]
