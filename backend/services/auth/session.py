"""Request authentication: access token to stored identity."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from core import AuthError
from .identity_resolution import get_user_by_id
from .schemas import PublicUser
from .tokens import TokenService

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None

    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = value.strip()
    return token or None


def extract_access_token(
    *,
    cookie_token: str | None,
    authorization: str | None,
) -> str | None:
    """Locate the access token; the cookie wins over the Authorization header."""
    if cookie_token:
        return cookie_token
    return extract_bearer_token(authorization)


async def authenticate_request(
    session: AsyncSession,
    token_service: TokenService,
    *,
    cookie_token: str | None,
    authorization: str | None,
) -> PublicUser:
    """Resolve the caller to a stored user or raise AuthError.

    Never mutates anything; every unexpected failure becomes a 401.
    """
    token = extract_access_token(cookie_token=cookie_token, authorization=authorization)
    if not token:
        raise AuthError("Please authenticate")

    try:
        claims = token_service.verify_access(token)
        user = await get_user_by_id(session, claims["sub"])
    except AuthError as exc:
        raise AuthError("Invalid access token") from exc
    except Exception as exc:
        logger.warning("Access token resolution failed", exc_info=exc)
        raise AuthError("Failed to authenticate user") from exc

    if user is None:
        raise AuthError("Invalid access token")
    return PublicUser.model_validate(user)
