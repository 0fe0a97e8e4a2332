"""Chime synthesis and platform notification interfaces."""

from famchat.infrastructure.notifications.chime import (
    CHIME_TONES,
    AudioSink,
    ChimePlayer,
    LoggingAudioSink,
    Tone,
    synthesize_chime,
)
from famchat.infrastructure.notifications.platform import (
    AppWindow,
    HeadlessWindow,
    LoggingNotificationPlatform,
    NotificationHandle,
    NotificationPlatform,
    PlatformPermission,
)

__all__ = [
    "CHIME_TONES",
    "AppWindow",
    "AudioSink",
    "ChimePlayer",
    "HeadlessWindow",
    "LoggingAudioSink",
    "LoggingNotificationPlatform",
    "NotificationHandle",
    "NotificationPlatform",
    "PlatformPermission",
    "Tone",
    "synthesize_chime",
]
