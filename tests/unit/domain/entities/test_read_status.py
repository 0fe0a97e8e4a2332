"""Tests for derive_read_status."""

from datetime import datetime, timedelta, timezone

from famchat.domain.entities.read_status import ReadStatus, derive_read_status
from famchat.domain.entities.views import Receipt

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    return BASE + timedelta(seconds=seconds)


def receipts(*seconds: int | None) -> list[Receipt]:
    return [
        Receipt(member_id=f"u{i}", last_read_at=None if s is None else at(s))
        for i, s in enumerate(seconds)
    ]


class TestDeriveReadStatus:
    """Delivery status of a message created at t=100."""

    def test_one_member_read(self) -> None:
        """One of two members has read past the message."""
        assert derive_read_status(at(100), receipts(90, 110)) == ReadStatus.DELIVERED

    def test_all_members_read(self) -> None:
        """Every other member has read past the message."""
        assert derive_read_status(at(100), receipts(110, 120)) == ReadStatus.READ

    def test_nobody_read(self) -> None:
        """Nobody has read past the message."""
        assert derive_read_status(at(100), receipts(50, 90)) == ReadStatus.SENT

    def test_no_other_members(self) -> None:
        """A thread without other members never goes past sent."""
        assert derive_read_status(at(100), []) == ReadStatus.SENT

    def test_never_read_counts_as_unread(self) -> None:
        """A member that never opened the thread has not read the message."""
        assert derive_read_status(at(100), receipts(None, 130)) == ReadStatus.DELIVERED

    def test_read_at_exact_creation_time(self) -> None:
        """Reading at the creation instant counts as read."""
        assert derive_read_status(at(100), receipts(100)) == ReadStatus.READ

    def test_naive_timestamps_are_utc(self) -> None:
        """Naive datetimes compare as UTC."""
        naive = at(100).replace(tzinfo=None)

        assert derive_read_status(naive, receipts(110)) == ReadStatus.READ
