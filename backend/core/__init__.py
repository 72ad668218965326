"""Core configuration, security and error primitives."""

from .config import Settings, get_settings
from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
    setup_exception_handlers,
)
from .logging import configure_logging
from .security import (
    PASSWORD_MAX_LENGTH,
    JwtTokenSigner,
    PasswordHasher,
    PwdlibPasswordHasher,
    TokenSigner,
    hash_password,
    verify_password,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "ApiError",
    "AuthError",
    "ConflictError",
    "InternalError",
    "InvalidTokenError",
    "NotFoundError",
    "PayloadTooLargeError",
    "ValidationError",
    "setup_exception_handlers",
    "PASSWORD_MAX_LENGTH",
    "PasswordHasher",
    "TokenSigner",
    "PwdlibPasswordHasher",
    "JwtTokenSigner",
    "hash_password",
    "verify_password",
]
