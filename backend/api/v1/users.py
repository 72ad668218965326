"""User profile, channel and history endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_app_settings, get_current_user, get_db, get_profile_service
from core import Settings
from core.schemas import CamelModel
from services.auth import PublicUser
from services.channels import (
    ChannelProfile,
    WatchHistoryItem,
    get_channel_profile,
    get_watch_history,
)
from services.profile import ProfileService
from .responses import ApiResponse
from .uploads import spooled_uploads

router = APIRouter(prefix="/users", tags=["users"])


class UpdateAccountRequest(CamelModel):
    fullname: str | None = None
    email: str | None = None


@router.get("/current-user", response_model=ApiResponse[PublicUser])
async def get_current_user_profile(
    current_user: PublicUser = Depends(get_current_user),
) -> ApiResponse[PublicUser]:
    return ApiResponse(data=current_user, message="Current user fetched successfully")


@router.patch("/update-account", response_model=ApiResponse[PublicUser])
async def update_account(
    payload: UpdateAccountRequest,
    current_user: PublicUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse[PublicUser]:
    user = await service.update_account(
        current_user.id,
        fullname=payload.fullname,
        email=payload.email,
    )
    return ApiResponse(data=user, message="Account details updated successfully")


@router.patch("/avatar", response_model=ApiResponse[PublicUser])
async def update_avatar(
    avatar: Annotated[UploadFile | None, File()] = None,
    current_user: PublicUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[PublicUser]:
    async with spooled_uploads(settings) as spooler:
        source = await spooler.spool(avatar)
        user = await service.update_avatar(current_user.id, source)
    return ApiResponse(data=user, message="Avatar updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[PublicUser])
async def update_cover_image(
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    current_user: PublicUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[PublicUser]:
    async with spooled_uploads(settings) as spooler:
        source = await spooler.spool(cover_image)
        user = await service.update_cover_image(current_user.id, source)
    return ApiResponse(data=user, message="Cover image updated successfully")


@router.get("/channel/{username}", response_model=ApiResponse[ChannelProfile])
async def get_user_channel_profile(
    username: str,
    current_user: PublicUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[ChannelProfile]:
    channel = await get_channel_profile(
        session,
        username=username,
        viewer_id=current_user.id,
    )
    return ApiResponse(data=channel, message="Channel fetched successfully")


@router.get("/history", response_model=ApiResponse[list[WatchHistoryItem]])
async def get_user_watch_history(
    current_user: PublicUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[list[WatchHistoryItem]]:
    history = await get_watch_history(session, user_id=current_user.id)
    return ApiResponse(data=history, message="Watch history fetched successfully")
