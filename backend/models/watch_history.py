"""Watch history entry model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlmodel import Field, SQLModel


class WatchHistoryEntry(SQLModel, table=True):
    """Records that a user watched a video."""

    __tablename__ = "watch_history"
    __table_args__ = (
        Index("ix_watch_history_user_watched_at", "user_id", "watched_at"),
    )

    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    video_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("videos.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    watched_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            nullable=False,
        )
    )
