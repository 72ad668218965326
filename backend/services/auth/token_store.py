"""Refresh-token persistence and rotation helpers.

Only the digest of the live refresh token is stored on the user row. A new
login overwrites it, logout clears it, and refresh swaps it atomically.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, cast

from sqlalchemy import update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def refresh_token_matches(user: User, token: str) -> bool:
    stored = user.refresh_token_hash
    if not stored:
        return False
    return hmac.compare_digest(stored, hash_refresh_token(token))


async def store_refresh_token(session: AsyncSession, user_id: str, token: str) -> None:
    await session.execute(
        update(User)
        .where(_eq(User.id, user_id))
        .values(refresh_token_hash=hash_refresh_token(token))
    )


async def clear_refresh_token(session: AsyncSession, user_id: str) -> None:
    await session.execute(
        update(User)
        .where(_eq(User.id, user_id))
        .values(refresh_token_hash=None)
    )


async def rotate_refresh_token(
    session: AsyncSession,
    user_id: str,
    *,
    presented: str,
    replacement: str,
) -> bool:
    """Swap the stored digest only if it still matches ``presented``.

    Returns False when another request already rotated or cleared it.
    """
    result = await session.execute(
        update(User)
        .where(
            _eq(User.id, user_id),
            _eq(User.refresh_token_hash, hash_refresh_token(presented)),
        )
        .values(refresh_token_hash=hash_refresh_token(replacement))
    )
    return cast(CursorResult[Any], result).rowcount == 1
