"""Blob storage for post attachments."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from campus_board.core.errors import StoreError

__all__ = ["BlobStore", "LocalBlobStore", "public_url"]

logger = logging.getLogger(__name__)


def public_url(base_url: str, bucket: str, path: str) -> str:
    """Join the public base URL, bucket and object path.

    This is pure string work; no request is made.
    """
    return f"{base_url.rstrip('/')}/{quote(bucket)}/{quote(path.lstrip('/'))}"


class BlobStore(Protocol):
    """Object storage operations used when posts gain or lose images."""

    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        """Store ``content`` and return the object path."""
        ...

    async def remove(self, bucket: str, paths: Sequence[str]) -> None:
        """Delete objects; paths that do not exist are ignored."""
        ...

    def public_url(self, bucket: str, path: str) -> str:
        """Return the URL a browser can fetch the object from."""
        ...


class LocalBlobStore:
    """Filesystem blob store rooted at ``root/<bucket>/<path>``."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        """Initialize the store with its root directory and public URL prefix."""
        self.root = Path(root)
        self.public_base_url = public_base_url

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path.lstrip("/")).resolve()
        if bucket_dir not in target.parents:
            raise StoreError(f"Invalid object path: {path}")
        return target

    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        """Write the object to disk, refusing to overwrite an existing one."""
        target = self._resolve(bucket, path)
        if target.exists():
            raise StoreError(f"The resource already exists: {bucket}/{path}")

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StoreError(str(exc)) from exc
        logger.info("Stored %s/%s (%s, %d bytes)", bucket, path, content_type, len(content))
        return path

    async def remove(self, bucket: str, paths: Sequence[str]) -> None:
        """Delete the given objects from ``bucket``."""
        targets = [self._resolve(bucket, path) for path in paths]

        def _unlink() -> None:
            for target in targets:
                target.unlink(missing_ok=True)

        try:
            await asyncio.to_thread(_unlink)
        except OSError as exc:
            raise StoreError(str(exc)) from exc
        logger.info("Removed %d object(s) from %s", len(targets), bucket)

    def public_url(self, bucket: str, path: str) -> str:
        """Return the public URL for an object in this store."""
        return public_url(self.public_base_url, bucket, path)
