"""Derived delivery status of a message."""

from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from famchat.domain.entities.types import ensure_utc
from famchat.domain.entities.views import Receipt


class ReadStatus(str, Enum):
    """Delivery status shown next to an own message."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


def derive_read_status(
    message_created_at: datetime, receipts: Iterable[Receipt]
) -> ReadStatus:
    """Classify a message against the other members' receipts.

    Args:
        message_created_at: Creation time of the message.
        receipts: Last-read timestamps of every member except the sender.

    Returns:
        READ when every other member has read past the message, DELIVERED
        when at least one has, SENT otherwise (including no other members).
    """
    created_at = ensure_utc(message_created_at)
    seen = [
        receipt.last_read_at is not None
        and ensure_utc(receipt.last_read_at) >= created_at
        for receipt in receipts
    ]
    if not seen:
        return ReadStatus.SENT
    if all(seen):
        return ReadStatus.READ
    if any(seen):
        return ReadStatus.DELIVERED
    return ReadStatus.SENT
