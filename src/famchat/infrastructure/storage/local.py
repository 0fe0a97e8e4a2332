"""Filesystem-backed object storage."""

import asyncio
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote


class ObjectStorage(Protocol):
    """Binary object storage with upload-by-path and public URLs."""

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``path``, replacing any existing object."""
        ...

    def public_url(self, path: str) -> str:
        """Return the public URL of an object."""
        ...


class LocalObjectStorage:
    """Stores objects as files below a root directory.

    Args:
        root: Directory that holds the objects.
        public_base_url: URL prefix under which ``root`` is served.
    """

    def __init__(self, root: Path, public_base_url: str) -> None:
        self._root = root
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Invalid object path: {path}")
        return self._root.joinpath(*relative.parts)

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(write)

    def public_url(self, path: str) -> str:
        self._resolve(path)
        return f"{self._public_base_url}/{quote(path)}"
