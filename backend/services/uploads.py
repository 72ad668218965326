"""Spooling of multipart uploads to local temp files before hosting."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from core import PayloadTooLargeError, ValidationError
from .storage import remove_local_file

CHUNK_SIZE = 64 * 1024
IMAGE_SUFFIXES = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
}


def inspect_image(local_path: Path) -> str:
    """Return the file suffix for a supported image, or raise ValueError."""
    try:
        with Image.open(local_path) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("Uploaded file is not a valid image") from exc
    suffix = IMAGE_SUFFIXES.get(image_format or "")
    if suffix is None:
        raise ValueError(f"Unsupported image format: {image_format}")
    return suffix


def _write_spool(upload_dir: Path, chunks: list[bytes]) -> Path:
    upload_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=upload_dir, delete=False) as handle:
        for chunk in chunks:
            handle.write(chunk)
    return Path(handle.name)


async def spool_upload(
    upload: UploadFile,
    *,
    upload_dir: Path,
    max_bytes: int,
) -> Path:
    """Buffer ``upload`` into ``upload_dir`` and return the image file path.

    The returned file carries the suffix of its detected image format. The
    caller owns the file; the media host removes it after uploading.
    """
    chunks: list[bytes] = []
    total = 0
    while chunk := await upload.read(CHUNK_SIZE):
        total += len(chunk)
        if total > max_bytes:
            raise PayloadTooLargeError(
                f"Uploaded file exceeds the {max_bytes} byte limit"
            )
        chunks.append(chunk)
    if total == 0:
        raise ValidationError(f"Uploaded file '{upload.filename}' is empty")

    spooled = await asyncio.to_thread(_write_spool, upload_dir, chunks)
    try:
        suffix = await asyncio.to_thread(inspect_image, spooled)
    except ValueError as exc:
        remove_local_file(spooled)
        raise ValidationError(str(exc)) from exc
    return spooled.rename(spooled.with_suffix(suffix))
