"""HTTP cookie helpers for auth token transport."""

from __future__ import annotations

from datetime import timedelta
from typing import Literal

from fastapi import Response

from core import Settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"


def _access_token_ttl(settings: Settings) -> timedelta:
    return timedelta(minutes=settings.access_token_expire_minutes)


def _refresh_token_ttl(settings: Settings) -> timedelta:
    return timedelta(minutes=settings.refresh_token_expire_minutes)


def set_token_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    *,
    settings: Settings,
) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=COOKIE_SAMESITE,
        max_age=int(_access_token_ttl(settings).total_seconds()),
        path=COOKIE_PATH,
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=COOKIE_SAMESITE,
        max_age=int(_refresh_token_ttl(settings).total_seconds()),
        path=COOKIE_PATH,
    )


def clear_token_cookies(response: Response, *, settings: Settings) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=key,
            path=COOKIE_PATH,
            secure=settings.cookie_secure,
            httponly=True,
            samesite=COOKIE_SAMESITE,
        )
