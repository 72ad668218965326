"""Authentication domain services."""

from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    set_token_cookies,
)
from .identity_resolution import (
    find_login_user,
    get_user_by_id,
    check_field_lengths,
    get_user_by_username,
    is_valid_email,
    normalize_email,
    normalize_username,
    registration_conflict_exists,
)
from .schemas import LoginResult, PublicUser, TokenPair
from .session import authenticate_request, extract_access_token, extract_bearer_token
from .token_store import (
    clear_refresh_token,
    hash_refresh_token,
    refresh_token_matches,
    rotate_refresh_token,
    store_refresh_token,
)
from .tokens import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE, TokenService
from .use_cases import AuthService

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "AuthService",
    "TokenService",
    "PublicUser",
    "LoginResult",
    "TokenPair",
    "authenticate_request",
    "extract_access_token",
    "extract_bearer_token",
    "clear_token_cookies",
    "set_token_cookies",
    "find_login_user",
    "get_user_by_id",
    "check_field_lengths",
    "get_user_by_username",
    "is_valid_email",
    "normalize_email",
    "normalize_username",
    "registration_conflict_exists",
    "hash_refresh_token",
    "refresh_token_matches",
    "store_refresh_token",
    "clear_refresh_token",
    "rotate_refresh_token",
]
