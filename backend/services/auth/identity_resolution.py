"""Identity normalization and user lookup helpers."""

from __future__ import annotations

from typing import Any, cast

from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import ValidationError
from models import User
from models.user import EMAIL_MAX_LENGTH, FULLNAME_MAX_LENGTH, USERNAME_MAX_LENGTH


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def check_field_lengths(
    *,
    username: str | None = None,
    email: str | None = None,
    fullname: str | None = None,
) -> None:
    """Raise ValidationError when a stored value would not fit its column."""
    limits = (
        ("Username", username, USERNAME_MAX_LENGTH),
        ("Email", email, EMAIL_MAX_LENGTH),
        ("Full name", fullname, FULLNAME_MAX_LENGTH),
    )
    for label, value, limit in limits:
        if value is not None and len(value.strip()) > limit:
            raise ValidationError(f"{label} must be at most {limit} characters")


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value.strip())
    except PydanticCustomError:
        return False
    return True


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_username(value: str) -> str:
    return value.strip().lower()


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(select(User).where(_eq(User.id, user_id)))
    return result.scalar_one_or_none()


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(
        select(User).where(_eq(User.username, normalize_username(username)))
    )
    return result.scalar_one_or_none()


async def registration_conflict_exists(
    session: AsyncSession,
    *,
    username: str,
    email: str,
) -> bool:
    existing = await session.execute(
        select(User.id)
        .where(
            or_(
                _eq(User.username, normalize_username(username)),
                _eq(User.email, normalize_email(email)),
            )
        )
        .limit(1)
    )
    return existing.scalar_one_or_none() is not None


async def email_taken_by_other(
    session: AsyncSession,
    *,
    email: str,
    user_id: str,
) -> bool:
    existing = await session.execute(
        select(User.id)
        .where(_eq(User.email, normalize_email(email)), ~_eq(User.id, user_id))
        .limit(1)
    )
    return existing.scalar_one_or_none() is not None


async def find_login_user(
    session: AsyncSession,
    *,
    username: str | None,
    email: str | None,
) -> User | None:
    """Resolve a login identifier; a username match wins over an email match."""
    # Clients with a single identifier field send emails as the username.
    if username and email is None and "@" in username:
        email = username
    conditions: list[ColumnElement[bool]] = []
    if username:
        conditions.append(_eq(User.username, normalize_username(username)))
    if email:
        conditions.append(_eq(User.email, normalize_email(email)))
    if not conditions:
        return None

    result = await session.execute(select(User).where(or_(*conditions)))
    candidates = result.scalars().all()
    if not candidates:
        return None
    if username:
        normalized = normalize_username(username)
        for candidate in candidates:
            if candidate.username == normalized:
                return candidate
    return candidates[0]
