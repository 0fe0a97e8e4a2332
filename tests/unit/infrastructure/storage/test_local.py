"""Tests for LocalObjectStorage."""

from pathlib import Path

import pytest

from famchat.infrastructure.storage import LocalObjectStorage


class TestLocalObjectStorage:
    """Tests for LocalObjectStorage class."""

    async def test_upload_writes_file(self, tmp_path: Path) -> None:
        """Uploads land below the root, creating directories."""
        storage = LocalObjectStorage(tmp_path, "http://files.local/")

        await storage.upload("t1/01ABC-photo.png", b"png", "image/png")

        assert (tmp_path / "t1" / "01ABC-photo.png").read_bytes() == b"png"

    def test_public_url_is_quoted(self, tmp_path: Path) -> None:
        """Public URLs join the base URL and the quoted path."""
        storage = LocalObjectStorage(tmp_path, "http://files.local/")

        assert (
            storage.public_url("t1/my photo.png")
            == "http://files.local/t1/my%20photo.png"
        )

    async def test_path_traversal_rejected(self, tmp_path: Path) -> None:
        """Paths may not escape the root."""
        storage = LocalObjectStorage(tmp_path / "root", "http://files.local")

        with pytest.raises(ValueError):
            await storage.upload("../escape.txt", b"x", "text/plain")
        with pytest.raises(ValueError):
            storage.public_url("/etc/passwd")
