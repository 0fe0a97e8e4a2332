"""Realtime publish/subscribe infrastructure."""

from famchat.infrastructure.realtime.hub import (
    ChannelState,
    PresenceState,
    RealtimeChannel,
    RealtimeHub,
    SubscribeStatus,
)
from famchat.infrastructure.realtime.reconnect import (
    ReconnectingSubscription,
    backoff_delays,
)

__all__ = [
    "ChannelState",
    "PresenceState",
    "RealtimeChannel",
    "RealtimeHub",
    "ReconnectingSubscription",
    "SubscribeStatus",
    "backoff_delays",
]
