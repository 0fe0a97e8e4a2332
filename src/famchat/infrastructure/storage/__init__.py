"""Object storage for message attachments."""

from famchat.infrastructure.storage.local import LocalObjectStorage, ObjectStorage

__all__ = ["LocalObjectStorage", "ObjectStorage"]
