"""Register, login, logout, refresh and change-password flows."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import (
    AuthError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
    PASSWORD_MAX_LENGTH,
    PasswordHasher,
    ValidationError,
)
from db.errors import is_unique_violation
from models import User
from services.storage import MediaHost, MediaUploadError, UploadedMedia
from .identity_resolution import (
    check_field_lengths,
    find_login_user,
    get_user_by_id,
    is_valid_email,
    normalize_email,
    normalize_username,
    registration_conflict_exists,
)
from .schemas import LoginResult, PublicUser, TokenPair
from .token_store import (
    clear_refresh_token,
    refresh_token_matches,
    rotate_refresh_token,
    store_refresh_token,
)
from .tokens import TokenService

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "avatars"
COVER_IMAGE_FOLDER = "cover-images"


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_password_length(password: str) -> None:
    # Same bound as the login and change-password request bodies.
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be at most {PASSWORD_MAX_LENGTH} characters"
        )


class AuthService:
    """Orchestrates the credential store, token service and media host."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        tokens: TokenService,
        hasher: PasswordHasher,
        media_host: MediaHost,
    ) -> None:
        self.session = session
        self.tokens = tokens
        self.hasher = hasher
        self.media_host = media_host

    async def register(
        self,
        *,
        fullname: str,
        username: str,
        email: str,
        password: str,
        avatar: Path | None,
        cover_image: Path | None = None,
    ) -> PublicUser:
        if any(_is_blank(field) for field in (fullname, username, email, password)):
            raise ValidationError("All fields are required")
        if not is_valid_email(email):
            raise ValidationError("Invalid email address")
        check_field_lengths(username=username, email=email, fullname=fullname)
        _check_password_length(password)
        if avatar is None:
            raise ValidationError("Avatar is required")

        if await registration_conflict_exists(self.session, username=username, email=email):
            raise ConflictError("User with that username or email already exists")

        avatar_media = await self._upload(avatar, AVATAR_FOLDER, "Failed to upload avatar")
        uploaded = [avatar_media]
        cover_media: UploadedMedia | None = None
        if cover_image is not None:
            try:
                cover_media = await self._upload(
                    cover_image, COVER_IMAGE_FOLDER, "Failed to upload cover image"
                )
            except InternalError:
                await self._discard_media(uploaded)
                raise
            uploaded.append(cover_media)

        password_hash = await asyncio.to_thread(self.hasher.hash, password)
        user = User(
            fullname=fullname.strip(),
            username=normalize_username(username),
            email=normalize_email(email),
            avatar=avatar_media.uri,
            cover_image=cover_media.uri if cover_media else None,
            password_hash=password_hash,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            await self._discard_media(uploaded)
            if isinstance(exc, IntegrityError) and is_unique_violation(exc):
                raise ConflictError(
                    "User with that username or email already exists"
                ) from exc
            raise InternalError("Failed to create user") from exc
        await self.session.refresh(user)

        logger.info("Registered user", extra={"user_id": user.id})
        return PublicUser.model_validate(user)

    async def login(
        self,
        *,
        username: str | None,
        email: str | None,
        password: str,
    ) -> LoginResult:
        if _is_blank(username) and _is_blank(email):
            raise ValidationError("Username or email is required")
        if not password:
            raise ValidationError("Password is required")

        user = await find_login_user(
            self.session,
            username=None if _is_blank(username) else username,
            email=None if _is_blank(email) else email,
        )
        if user is None:
            raise NotFoundError("User does not exist")

        if not await asyncio.to_thread(self.hasher.verify, password, user.password_hash):
            logger.warning("Rejected login with invalid password", extra={"user_id": user.id})
            raise AuthError("Invalid user credentials")

        access_token = self.tokens.issue_access_token(user)
        refresh_token = self.tokens.issue_refresh_token(user)
        # Overwrites any previous digest: one live session per user.
        await store_refresh_token(self.session, user.id, refresh_token)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info("User logged in", extra={"user_id": user.id})
        return LoginResult(
            user=PublicUser.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    async def logout(self, user_id: str) -> None:
        await clear_refresh_token(self.session, user_id)
        await self.session.commit()
        logger.info("User logged out", extra={"user_id": user_id})

    async def refresh(self, presented: str | None) -> TokenPair:
        if not presented:
            raise AuthError("Unauthorized request")

        try:
            claims = self.tokens.verify_refresh(presented)
        except InvalidTokenError as exc:
            raise AuthError("Invalid refresh token") from exc

        user = await get_user_by_id(self.session, claims["sub"])
        if user is None:
            raise AuthError("Invalid refresh token")
        if not refresh_token_matches(user, presented):
            logger.warning("Rejected stale refresh token", extra={"user_id": user.id})
            raise AuthError("Refresh token is expired or used")

        access_token = self.tokens.issue_access_token(user)
        refresh_token = self.tokens.issue_refresh_token(user)
        rotated = await rotate_refresh_token(
            self.session,
            user.id,
            presented=presented,
            replacement=refresh_token,
        )
        if not rotated:
            await self.session.rollback()
            logger.warning("Lost refresh token rotation race", extra={"user_id": user.id})
            raise AuthError("Refresh token is expired or used")
        await self.session.commit()
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def change_password(
        self,
        user_id: str,
        *,
        old_password: str,
        new_password: str,
    ) -> None:
        if not old_password or _is_blank(new_password):
            raise ValidationError("Old and new password are required")
        _check_password_length(new_password)

        user = await get_user_by_id(self.session, user_id)
        if user is None:
            raise NotFoundError("User does not exist")
        if not await asyncio.to_thread(self.hasher.verify, old_password, user.password_hash):
            raise AuthError("Invalid old password")

        user.password_hash = await asyncio.to_thread(self.hasher.hash, new_password)
        self.session.add(user)
        await self.session.commit()
        logger.info("Password changed", extra={"user_id": user_id})

    async def _upload(self, source: Path, folder: str, failure_message: str) -> UploadedMedia:
        try:
            media = await self.media_host.upload(source, folder=folder)
        except MediaUploadError as exc:
            raise InternalError(failure_message) from exc
        if not media.uri:
            raise InternalError(failure_message)
        return media

    async def _discard_media(self, uploaded: list[UploadedMedia]) -> None:
        for media in uploaded:
            try:
                await self.media_host.delete(media.uri)
            except Exception as cleanup_error:
                logger.warning(
                    "Failed to cleanup uploaded media after registration failure",
                    extra={"media_uri": media.uri},
                    exc_info=cleanup_error,
                )
