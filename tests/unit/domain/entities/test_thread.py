"""Tests for thread and message entities."""

from famchat.domain.entities.message import AttachmentType, Message
from famchat.domain.entities.thread import Thread, ThreadKind, direct_key_for


class TestDirectKey:
    """Tests for direct_key_for."""

    def test_is_order_independent(self) -> None:
        """A->B and B->A map to the same key."""
        assert direct_key_for("alice", "bob") == direct_key_for("bob", "alice")
        assert direct_key_for("bob", "alice") == "alice:bob"


class TestThread:
    """Tests for Thread defaults."""

    def test_defaults(self) -> None:
        """New threads get a ULID and an aware creation time."""
        thread = Thread(created_by="alice")

        assert len(thread.id) == 26
        assert thread.kind == ThreadKind.GROUP
        assert thread.direct_key is None
        assert thread.created_at.tzinfo is not None


class TestMessage:
    """Tests for Message helpers."""

    def test_attachment_absent(self) -> None:
        """Messages without URL have no attachment."""
        assert Message(thread_id="t", sender_id="u", content="hi").attachment is None

    def test_attachment_reference(self) -> None:
        """Attachment columns are exposed as one reference."""
        message = Message(
            thread_id="t",
            sender_id="u",
            attachment_url="http://x/a.png",
            attachment_type="image",
            attachment_name="a.png",
        )

        attachment = message.attachment
        assert attachment is not None
        assert attachment.type == AttachmentType.IMAGE
        assert attachment.name == "a.png"
