"""Domain entities."""

from famchat.domain.entities.event import (
    ChangeAction,
    ChangeEvent,
    Event,
    EventType,
    ReconcileEvent,
)
from famchat.domain.entities.message import Attachment, AttachmentType, Message
from famchat.domain.entities.presence import PresenceEntry
from famchat.domain.entities.profile import Preference, Profile
from famchat.domain.entities.read_status import ReadStatus, derive_read_status
from famchat.domain.entities.thread import Thread, ThreadKind, ThreadMember
from famchat.domain.entities.views import (
    LastMessage,
    MemberRef,
    MessageView,
    Receipt,
    SenderProfile,
    ThreadSummary,
)

__all__ = [
    "Attachment",
    "AttachmentType",
    "ChangeAction",
    "ChangeEvent",
    "Event",
    "EventType",
    "LastMessage",
    "MemberRef",
    "Message",
    "MessageView",
    "Preference",
    "PresenceEntry",
    "Profile",
    "ReadStatus",
    "Receipt",
    "ReconcileEvent",
    "SenderProfile",
    "Thread",
    "ThreadKind",
    "ThreadMember",
    "ThreadSummary",
    "derive_read_status",
]
