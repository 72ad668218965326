"""User domain model."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlmodel import Field, SQLModel

USERNAME_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 255
FULLNAME_MAX_LENGTH = 80


class User(SQLModel, table=True):
    """Registered channel owner and viewer."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    username: str = Field(
        sa_column=Column(String(USERNAME_MAX_LENGTH), unique=True, nullable=False, index=True)
    )
    email: str = Field(
        sa_column=Column(String(EMAIL_MAX_LENGTH), unique=True, nullable=False, index=True)
    )
    fullname: str = Field(
        sa_column=Column(String(FULLNAME_MAX_LENGTH), nullable=False)
    )
    avatar: str = Field(
        sa_column=Column(String(512), nullable=False)
    )
    cover_image: str | None = Field(
        default=None, sa_column=Column(String(512), nullable=True)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    # SHA-256 digest of the single refresh token currently trusted for this user.
    refresh_token_hash: str | None = Field(
        default=None, sa_column=Column(String(64), nullable=True)
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
    )
