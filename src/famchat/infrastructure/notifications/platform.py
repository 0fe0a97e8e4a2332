"""Platform notification and window interfaces."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import ulid
from structlog.stdlib import BoundLogger


class PlatformPermission(str, Enum):
    """Permission reported by the platform notification API."""

    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class NotificationHandle:
    """A notification currently shown by the platform."""

    title: str
    body: str
    tag: str
    on_click: Callable[[], None] | None = None
    id: str = field(default_factory=lambda: str(ulid.new()))
    closed: bool = False


class NotificationPlatform(Protocol):
    """Platform notification API."""

    @property
    def supported(self) -> bool:
        """Return False when the platform cannot show notifications."""
        ...

    def permission(self) -> PlatformPermission:
        """Return the current permission."""
        ...

    async def request_permission(self) -> PlatformPermission:
        """Prompt the user and return the resulting permission."""
        ...

    def show(
        self, title: str, body: str, tag: str, on_click: Callable[[], None]
    ) -> NotificationHandle:
        """Display a notification."""
        ...

    def close(self, handle: NotificationHandle) -> None:
        """Dismiss a notification; closing twice is a no-op."""
        ...


class AppWindow(Protocol):
    """The application window."""

    def has_focus(self) -> bool:
        ...

    def focus(self) -> None:
        ...


class LoggingNotificationPlatform:
    """Notification platform for headless sessions.

    Shown notifications are logged and kept in ``shown``; the answer to a
    permission prompt is fixed at construction.
    """

    def __init__(
        self,
        logger: BoundLogger,
        permission: PlatformPermission = PlatformPermission.DEFAULT,
        prompt_answer: PlatformPermission = PlatformPermission.GRANTED,
    ) -> None:
        self._logger = logger
        self._permission = permission
        self._prompt_answer = prompt_answer
        self.prompt_count = 0
        self.shown: list[NotificationHandle] = []

    @property
    def supported(self) -> bool:
        return True

    def permission(self) -> PlatformPermission:
        return self._permission

    async def request_permission(self) -> PlatformPermission:
        self.prompt_count += 1
        if self._permission is PlatformPermission.DEFAULT:
            self._permission = self._prompt_answer
        return self._permission

    def show(
        self, title: str, body: str, tag: str, on_click: Callable[[], None]
    ) -> NotificationHandle:
        handle = NotificationHandle(title=title, body=body, tag=tag, on_click=on_click)
        self.shown.append(handle)
        self._logger.info("Notification shown", notification_id=handle.id, title=title)
        return handle

    def close(self, handle: NotificationHandle) -> None:
        if handle.closed:
            return
        handle.closed = True
        self._logger.debug("Notification closed", notification_id=handle.id)


class HeadlessWindow:
    """Window stand-in for sessions without a UI."""

    def __init__(self, focused: bool = False) -> None:
        self.focused = focused
        self.focus_requests = 0

    def has_focus(self) -> bool:
        return self.focused

    def focus(self) -> None:
        self.focus_requests += 1
        self.focused = True
