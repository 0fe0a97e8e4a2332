"""Pydantic models for application configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class MemberConfig(BaseModel):
    """Signed-in member the session runs for."""

    member_id: str = Field(..., description="Member ID issued by the auth service.")


class ChatConfig(BaseModel):
    """Chat behaviour configuration."""

    group_thread_title: str = Field(
        default="Family Group Chat",
        description="Reserved title of the single family-wide group thread.",
    )
    attachment_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest attachment accepted before upload.",
    )
    receipts_poll_interval: float = Field(
        default=10.0,
        description="Seconds between read-receipt polls of an open thread.",
    )
    unread_poll_interval: float = Field(
        default=30.0,
        description="Seconds between unread-count refreshes.",
    )
    last_seen_interval: float = Field(
        default=60.0,
        description="Seconds between durable last-seen writes while online.",
    )
    notification_dismiss_after: float = Field(
        default=5.0,
        description="Seconds before a platform notification closes itself.",
    )
    notification_body_limit: int = Field(
        default=80,
        description="Characters of message content shown in a notification.",
    )


class RealtimeConfig(BaseModel):
    """Reconnect policy for realtime subscriptions."""

    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    reconnect_multiplier: float = 2.0
    reconnect_max_attempts: int | None = Field(
        default=None,
        description="Give up after this many failed attempts; None retries forever.",
    )


class StorageConfig(BaseModel):
    """Attachment object storage configuration."""

    root: Path = Path("./data/storage")
    public_base_url: str = "http://localhost:8080/storage"


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/famchat.db",
        description=(
            "SQLAlchemy-style database connection URL "
            "(e.g., 'sqlite+aiosqlite:///path/to/db')."
        ),
    )


class ServerConfig(BaseModel):
    """HTTP event ingress configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"


class AppConfig(BaseModel):
    """Application configuration."""

    member: MemberConfig
    chat: ChatConfig = Field(default_factory=ChatConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
