"""MinIO-backed media host."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import Settings

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
EXISTING_BUCKET_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})


class MediaUploadError(Exception):
    """Raised when a local file could not be stored on the media host."""


@dataclass(frozen=True)
class UploadedMedia:
    uri: str
    key: str


class MediaHost(Protocol):
    async def upload(self, local_path: Path, *, folder: str) -> UploadedMedia: ...

    async def delete(self, uri: str) -> None: ...


def build_minio_client(settings: Settings) -> Minio:
    """Return a MinIO client configured from settings."""
    return Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


def remove_local_file(local_path: Path) -> None:
    """Best-effort removal of a spooled temp file."""
    try:
        local_path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning(
            "Failed to remove local upload file",
            extra={"path": str(local_path)},
            exc_info=exc,
        )


class MinioMediaHost:
    """Stores uploads in a single bucket and hands out stable public URIs."""

    def __init__(self, settings: Settings, client: Minio | None = None) -> None:
        self.bucket = settings.minio_bucket
        self.base_url = settings.media_base_url
        self.client = client or build_minio_client(settings)
        self._bucket_ready = False

    def ensure_bucket(self) -> None:
        """Ensure the configured bucket exists."""
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket):  # pragma: no cover - network call
            try:
                self.client.make_bucket(self.bucket)  # pragma: no cover - network call
            except S3Error as exc:  # pragma: no cover - handle race conditions
                if exc.code not in EXISTING_BUCKET_CODES:
                    raise
        self._bucket_ready = True

    def uri_for(self, object_key: str) -> str:
        return f"{self.base_url}/{object_key}"

    def key_for(self, uri: str) -> str | None:
        prefix = f"{self.base_url}/"
        if not uri.startswith(prefix):
            return None
        return uri[len(prefix):] or None

    def _put_file(self, object_key: str, local_path: Path, content_type: str) -> None:
        self.ensure_bucket()
        self.client.fput_object(
            self.bucket,
            object_key,
            str(local_path),
            content_type=content_type,
        )

    def _remove_object(self, object_key: str) -> None:
        try:
            self.client.remove_object(self.bucket, object_key)  # pragma: no cover - network call
        except S3Error as exc:  # pragma: no cover - network call
            if exc.code not in MISSING_OBJECT_CODES:
                raise

    async def upload(self, local_path: Path, *, folder: str) -> UploadedMedia:
        """Upload ``local_path`` and always remove it from local disk afterwards."""
        try:
            if not local_path.is_file():
                raise MediaUploadError(f"Local file not found: {local_path}")
            object_key = f"{folder.strip('/')}/{uuid4().hex}{local_path.suffix.lower()}"
            content_type = (
                mimetypes.guess_type(local_path.name)[0] or "application/octet-stream"
            )
            await asyncio.to_thread(self._put_file, object_key, local_path, content_type)
        except MediaUploadError:
            raise
        except Exception as exc:
            raise MediaUploadError("Failed to upload file to media host") from exc
        finally:
            remove_local_file(local_path)
        return UploadedMedia(uri=self.uri_for(object_key), key=object_key)

    async def delete(self, uri: str) -> None:
        object_key = self.key_for(uri)
        if object_key is None:
            return
        await asyncio.to_thread(self._remove_object, object_key)
