"""Business logic services."""

from .rate_limiter import (
    RateLimitMiddleware,
    RateLimiter,
    get_rate_limiter,
    set_rate_limiter,
)
from .storage import (
    MediaHost,
    MediaUploadError,
    MinioMediaHost,
    UploadedMedia,
    build_minio_client,
    remove_local_file,
)
from .uploads import spool_upload

__all__ = [
    "MediaHost",
    "MediaUploadError",
    "MinioMediaHost",
    "UploadedMedia",
    "build_minio_client",
    "remove_local_file",
    "spool_upload",
    "RateLimiter",
    "RateLimitMiddleware",
    "get_rate_limiter",
    "set_rate_limiter",
]
