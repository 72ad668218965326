"""Request-scoped spooling of multipart files."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile

from core import Settings
from services import remove_local_file, spool_upload


class SpooledUploads:
    """Tracks temp files written for one request."""

    def __init__(self, settings: Settings) -> None:
        self.upload_dir = Path(settings.upload_temp_dir)
        self.max_bytes = settings.upload_max_bytes
        self.paths: list[Path] = []

    async def spool(self, upload: UploadFile | None) -> Path | None:
        if upload is None:
            return None
        path = await spool_upload(
            upload,
            upload_dir=self.upload_dir,
            max_bytes=self.max_bytes,
        )
        self.paths.append(path)
        return path


@asynccontextmanager
async def spooled_uploads(settings: Settings) -> AsyncIterator[SpooledUploads]:
    """Yield a spooler whose leftover temp files are removed on exit."""
    spooler = SpooledUploads(settings)
    try:
        yield spooler
    finally:
        for path in spooler.paths:
            remove_local_file(path)
