"""Account detail and profile media updates."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import ConflictError, InternalError, NotFoundError, ValidationError
from db.errors import is_unique_violation
from models import User
from services.auth.identity_resolution import (
    check_field_lengths,
    email_taken_by_other,
    get_user_by_id,
    is_valid_email,
    normalize_email,
)
from services.auth.schemas import PublicUser
from services.auth.use_cases import AVATAR_FOLDER, COVER_IMAGE_FOLDER
from services.storage import MediaHost, MediaUploadError

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, session: AsyncSession, *, media_host: MediaHost) -> None:
        self.session = session
        self.media_host = media_host

    async def _require_user(self, user_id: str) -> User:
        user = await get_user_by_id(self.session, user_id)
        if user is None:
            raise NotFoundError("User does not exist")
        return user

    async def update_account(
        self,
        user_id: str,
        *,
        fullname: str | None,
        email: str | None,
    ) -> PublicUser:
        """Replace display name and email together."""
        if not fullname or not fullname.strip() or not email or not email.strip():
            raise ValidationError("All fields are required")
        if not is_valid_email(email):
            raise ValidationError("Invalid email address")
        check_field_lengths(email=email, fullname=fullname)

        user = await self._require_user(user_id)
        if await email_taken_by_other(self.session, email=email, user_id=user_id):
            raise ConflictError("Email is already in use")

        user.fullname = fullname.strip()
        user.email = normalize_email(email)
        self.session.add(user)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            if isinstance(exc, IntegrityError) and is_unique_violation(exc):
                raise ConflictError("Email is already in use") from exc
            raise InternalError("Failed to update account details") from exc
        await self.session.refresh(user)
        return PublicUser.model_validate(user)

    async def update_avatar(self, user_id: str, source: Path | None) -> PublicUser:
        if source is None:
            raise ValidationError("Avatar file is missing")
        return await self._replace_media(
            user_id,
            source,
            field="avatar",
            folder=AVATAR_FOLDER,
            failure_message="Failed to upload avatar",
        )

    async def update_cover_image(self, user_id: str, source: Path | None) -> PublicUser:
        if source is None:
            raise ValidationError("Cover image file is missing")
        return await self._replace_media(
            user_id,
            source,
            field="cover_image",
            folder=COVER_IMAGE_FOLDER,
            failure_message="Failed to upload cover image",
        )

    async def _replace_media(
        self,
        user_id: str,
        source: Path,
        *,
        field: str,
        folder: str,
        failure_message: str,
    ) -> PublicUser:
        user = await self._require_user(user_id)
        try:
            media = await self.media_host.upload(source, folder=folder)
        except MediaUploadError as exc:
            raise InternalError(failure_message) from exc
        if not media.uri:
            raise InternalError(failure_message)

        previous_uri: str | None = getattr(user, field)
        setattr(user, field, media.uri)
        self.session.add(user)
        try:
            await self.session.commit()
        except Exception as exc:
            await self.session.rollback()
            await self._delete_quietly(media.uri)
            raise InternalError(failure_message) from exc
        await self.session.refresh(user)

        if previous_uri and previous_uri != media.uri:
            await self._delete_quietly(previous_uri)
        return PublicUser.model_validate(user)

    async def _delete_quietly(self, uri: str) -> None:
        try:
            await self.media_host.delete(uri)
        except Exception as cleanup_error:
            logger.warning(
                "Failed to cleanup profile media object",
                extra={"media_uri": uri},
                exc_info=cleanup_error,
            )
