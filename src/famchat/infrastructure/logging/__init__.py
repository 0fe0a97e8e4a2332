"""Logging infrastructure module."""

from famchat.infrastructure.logging.setup import (
    bind_session_context,
    get_logger,
    setup_logging,
)

__all__ = ["bind_session_context", "get_logger", "setup_logging"]
