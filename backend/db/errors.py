"""Database error helpers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError comes from a unique constraint.

    Postgres drivers expose the SQLSTATE; SQLite only reports it in the
    message text.
    """
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(original or error).lower()
    return "duplicate key" in message or "unique constraint" in message


__all__ = ["is_unique_violation"]
