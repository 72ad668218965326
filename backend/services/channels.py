"""Channel profile and watch history read models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import NotFoundError, ValidationError
from core.schemas import CamelModel
from models import Subscription, User, Video, WatchHistoryEntry
from services.auth.identity_resolution import get_user_by_id, normalize_username


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


class ChannelProfile(CamelModel):
    id: str
    fullname: str
    username: str
    email: str
    avatar: str
    cover_image: str | None = None
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False


class VideoOwner(CamelModel):
    fullname: str
    username: str
    avatar: str


class WatchHistoryItem(CamelModel):
    id: int
    title: str
    description: str
    thumbnail: str
    video_file: str
    duration: float
    views: int = 0
    watched_at: datetime | None = None
    owner: VideoOwner


async def get_channel_profile(
    session: AsyncSession,
    *,
    username: str,
    viewer_id: str,
) -> ChannelProfile:
    """Return a channel with its subscription counts relative to the viewer."""
    if not username or not username.strip():
        raise ValidationError("Username is required")

    subscribers_count = (
        select(func.count())
        .select_from(Subscription)
        .where(_eq(Subscription.channel_id, User.id))
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count())
        .select_from(Subscription)
        .where(_eq(Subscription.subscriber_id, User.id))
        .correlate(User)
        .scalar_subquery()
    )
    is_subscribed = (
        select(Subscription.subscriber_id)
        .where(
            _eq(Subscription.channel_id, User.id),
            _eq(Subscription.subscriber_id, viewer_id),
        )
        .correlate(User)
        .exists()
    )

    result = await session.execute(
        select(
            User,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("channels_subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
        ).where(_eq(User.username, normalize_username(username)))
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Channel does not exist")

    channel, subscribers, subscribed_to, viewer_subscribed = row
    return ChannelProfile(
        id=channel.id,
        fullname=channel.fullname,
        username=channel.username,
        email=channel.email,
        avatar=channel.avatar,
        cover_image=channel.cover_image,
        subscribers_count=int(subscribers or 0),
        channels_subscribed_to_count=int(subscribed_to or 0),
        is_subscribed=bool(viewer_subscribed),
    )


async def get_watch_history(
    session: AsyncSession,
    *,
    user_id: str,
) -> list[WatchHistoryItem]:
    """Return watched videos, most recent first, each joined with its owner."""
    if await get_user_by_id(session, user_id) is None:
        raise NotFoundError("User does not exist")

    result = await session.execute(
        select(Video, WatchHistoryEntry.watched_at, User.fullname, User.username, User.avatar)
        .join(WatchHistoryEntry, _eq(WatchHistoryEntry.video_id, Video.id))
        .join(User, _eq(User.id, Video.owner_id))
        .where(_eq(WatchHistoryEntry.user_id, user_id))
        .order_by(_desc(WatchHistoryEntry.watched_at), _desc(Video.id))
    )

    history: list[WatchHistoryItem] = []
    for video, watched_at, owner_fullname, owner_username, owner_avatar in result.all():
        if video.id is None:
            continue
        history.append(
            WatchHistoryItem(
                id=video.id,
                title=video.title,
                description=video.description,
                thumbnail=video.thumbnail,
                video_file=video.video_file,
                duration=video.duration,
                views=video.views,
                watched_at=watched_at,
                owner=VideoOwner(
                    fullname=owner_fullname,
                    username=owner_username,
                    avatar=owner_avatar,
                ),
            )
        )
    return history
