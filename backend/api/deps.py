"""FastAPI dependency providers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core import PasswordHasher, Settings, get_settings
from core.security import default_password_hasher
from db import get_session
from services.auth import (
    ACCESS_COOKIE,
    AuthService,
    PublicUser,
    TokenService,
    authenticate_request,
)
from services.profile import ProfileService
from services.storage import MediaHost, MinioMediaHost


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_app_settings() -> Settings:
    return get_settings()


@lru_cache
def _minio_media_host() -> MinioMediaHost:
    return MinioMediaHost(get_settings())


def get_media_host() -> MediaHost:
    return _minio_media_host()


def get_password_hasher() -> PasswordHasher:
    return default_password_hasher


def get_token_service(settings: Settings = Depends(get_app_settings)) -> TokenService:
    return TokenService(settings)


def get_auth_service(
    session: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
    media_host: MediaHost = Depends(get_media_host),
) -> AuthService:
    return AuthService(session, tokens=tokens, hasher=hasher, media_host=media_host)


def get_profile_service(
    session: AsyncSession = Depends(get_db),
    media_host: MediaHost = Depends(get_media_host),
) -> ProfileService:
    return ProfileService(session, media_host=media_host)


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> PublicUser:
    """Resolve the authenticated caller; raises AuthError (401) otherwise."""
    return await authenticate_request(
        session,
        tokens,
        cookie_token=request.cookies.get(ACCESS_COOKIE),
        authorization=request.headers.get("authorization"),
    )
