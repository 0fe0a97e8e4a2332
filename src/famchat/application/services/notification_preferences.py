"""Notification preference flags and the push permission state machine."""

from enum import Enum

from structlog.stdlib import BoundLogger

from famchat.domain.repositories import PreferenceRepository
from famchat.infrastructure.notifications import (
    NotificationPlatform,
    PlatformPermission,
)

SOUND_ENABLED_KEY = "chat-sound-enabled"
PUSH_ENABLED_KEY = "chat-push-enabled"


class NotificationPreferences:
    """Sound and push flags of a member.

    Both flags default to enabled; only an explicit ``"false"`` turns one off.
    """

    def __init__(self, preferences: PreferenceRepository, member_id: str) -> None:
        self._preferences = preferences
        self._member_id = member_id

    async def sound_enabled(self) -> bool:
        return await self._flag(SOUND_ENABLED_KEY)

    async def push_enabled(self) -> bool:
        return await self._flag(PUSH_ENABLED_KEY)

    async def set_sound_enabled(self, enabled: bool) -> None:
        await self._set_flag(SOUND_ENABLED_KEY, enabled)

    async def set_push_enabled(self, enabled: bool) -> None:
        await self._set_flag(PUSH_ENABLED_KEY, enabled)

    async def _flag(self, key: str) -> bool:
        value = await self._preferences.get(self._member_id, key)
        return value != "false"

    async def _set_flag(self, key: str, enabled: bool) -> None:
        value = "true" if enabled else "false"
        await self._preferences.set(self._member_id, key, value)


class PermissionState(str, Enum):
    """Push permission as tracked by the session."""

    UNREQUESTED = "unrequested"
    REQUESTED = "requested"
    GRANTED = "granted"
    DENIED = "denied"


class NotificationPermissionGate:
    """Guards the platform permission prompt.

    The prompt is shown at most once per session. A prompt dismissed without
    an answer counts as denied; once denied the user is never asked again.
    """

    def __init__(self, platform: NotificationPlatform, logger: BoundLogger) -> None:
        self._platform = platform
        self._logger = logger
        self._state = self._from_platform(platform.permission())

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def granted(self) -> bool:
        return self._state is PermissionState.GRANTED

    async def request(self) -> bool:
        """Ask for permission if it has not been asked yet.

        Returns:
            True if push notifications may be shown.
        """
        if self._state is not PermissionState.UNREQUESTED:
            return self.granted
        if not self._platform.supported:
            self._state = PermissionState.DENIED
            return False

        self._state = PermissionState.REQUESTED
        answer = await self._platform.request_permission()
        self._state = (
            PermissionState.GRANTED
            if answer is PlatformPermission.GRANTED
            else PermissionState.DENIED
        )
        self._logger.info("Notification permission answered", state=self._state.value)
        return self.granted

    @staticmethod
    def _from_platform(permission: PlatformPermission) -> PermissionState:
        if permission is PlatformPermission.GRANTED:
            return PermissionState.GRANTED
        if permission is PlatformPermission.DENIED:
            return PermissionState.DENIED
        return PermissionState.UNREQUESTED
