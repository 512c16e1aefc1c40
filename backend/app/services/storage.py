"""Local object storage for chart, calendar and strategy images.

Objects live under ``<root>/<bucket>/<path>`` and are exposed publicly as
``<public_base_url>/storage/<bucket>/<path>`` through a static mount.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import secrets
import time
from pathlib import Path
from uuid import UUID

from app.config import AppSettings

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/storage"


class StorageError(RuntimeError):
    """Raised when an object cannot be written or decoded."""


def decode_image(image: str) -> bytes:
    """Decode raw base64 or a ``data:`` URL into bytes."""

    payload = image.split(",", 1)[1] if image.startswith("data:") else image
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise StorageError("La imagen no es un base64 válido.") from exc


class ObjectStorage:
    def __init__(self, root: str | Path, bucket: str, public_base_url: str) -> None:
        self._root = Path(root)
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ObjectStorage":
        return cls(settings.storage_root, settings.storage_bucket, settings.public_base_url)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def bucket_dir(self) -> Path:
        return self._root / self._bucket

    def object_path(self, user_id: UUID | str, category: str, extension: str = "jpg") -> str:
        """Return a fresh ``user/category/timestamp-random.ext`` key."""

        stamp = int(time.time() * 1000)
        return f"{user_id}/{category}/{stamp}-{secrets.token_hex(4)}.{extension}"

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}{PUBLIC_PREFIX}/{self._bucket}/{path}"

    def path_from_url(self, url: str) -> str | None:
        """Recover the object key from a public URL, or ``None`` when foreign."""

        marker = f"/{self._bucket}/"
        public_marker = f"/{self._bucket}/public/"
        if public_marker in url:
            return url.split(public_marker, 1)[1] or None
        if marker in url:
            return url.split(marker, 1)[1] or None
        return None

    def _resolve(self, path: str) -> Path:
        target = (self.bucket_dir / path).resolve()
        if not target.is_relative_to(self.bucket_dir.resolve()):
            raise StorageError(f"Ruta de objeto inválida: {path}")
        return target

    async def upload(self, user_id: UUID | str, category: str, image: str) -> str:
        """Store a base64 image under a fresh key and return its public URL.

        Values that are already http(s) URLs are returned unchanged.
        """

        if image.startswith(("http://", "https://")):
            return image
        data = decode_image(image)
        path = self.object_path(user_id, category)
        target = self._resolve(path)
        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_bytes, data)
        logger.info("Stored %d bytes at %s/%s", len(data), self._bucket, path)
        return self.public_url(path)

    async def read(self, url: str) -> bytes | None:
        path = self.path_from_url(url)
        if path is None:
            return None
        target = self._resolve(path)
        if not target.is_file():
            return None
        return await asyncio.to_thread(target.read_bytes)

    async def read_base64(self, url: str) -> str | None:
        data = await self.read(url)
        return base64.b64encode(data).decode("ascii") if data is not None else None

    async def delete(self, url: str) -> bool:
        """Remove the object behind ``url``; unknown URLs are ignored."""

        path = self.path_from_url(url)
        if path is None:
            logger.warning("Cannot derive storage path from %s", url)
            return False
        target = self._resolve(path)
        if not target.is_file():
            return False
        await asyncio.to_thread(target.unlink)
        logger.info("Deleted %s/%s", self._bucket, path)
        return True


__all__ = ["ObjectStorage", "PUBLIC_PREFIX", "StorageError", "decode_image"]
