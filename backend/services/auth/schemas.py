"""Auth-facing user payloads."""

from __future__ import annotations

from datetime import datetime

from core.schemas import CamelModel


class PublicUser(CamelModel):
    """User record without the password hash or refresh-token digest."""

    id: str
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class LoginResult(TokenPair):
    user: PublicUser
