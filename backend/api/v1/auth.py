"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, File, Form, Request, Response, UploadFile
from pydantic import Field

from api.deps import get_app_settings, get_auth_service, get_current_user
from core import PASSWORD_MAX_LENGTH, Settings
from core.schemas import CamelModel
from models.user import EMAIL_MAX_LENGTH
from services.auth import (
    REFRESH_COOKIE,
    AuthService,
    LoginResult,
    PublicUser,
    TokenPair,
    clear_token_cookies,
    set_token_cookies,
)
from .responses import ApiResponse
from .uploads import spooled_uploads

router = APIRouter(prefix="/users", tags=["auth"])


class LoginRequest(CamelModel):
    username: str | None = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    email: str | None = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    password: str = Field(default="", max_length=PASSWORD_MAX_LENGTH)


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(default="", max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(default="", max_length=PASSWORD_MAX_LENGTH)


@router.post("/register", response_model=ApiResponse[PublicUser])
async def register(
    fullname: Annotated[str, Form()] = "",
    username: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[PublicUser]:
    async with spooled_uploads(settings) as spooler:
        avatar_path = await spooler.spool(avatar)
        cover_path = await spooler.spool(cover_image)
        user = await service.register(
            fullname=fullname,
            username=username,
            email=email,
            password=password,
            avatar=avatar_path,
            cover_image=cover_path,
        )
    return ApiResponse(data=user, message="User registered successfully")


@router.post("/login", response_model=ApiResponse[LoginResult])
async def login(
    payload: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[LoginResult]:
    result = await service.login(
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    set_token_cookies(response, result.access_token, result.refresh_token, settings=settings)
    return ApiResponse(data=result, message="User logged in successfully")


@router.post("/logout", response_model=ApiResponse[dict[str, Any]])
async def logout(
    response: Response,
    current_user: PublicUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[dict[str, Any]]:
    await service.logout(current_user.id)
    clear_token_cookies(response, settings=settings)
    return ApiResponse(data={}, message="User logged out successfully")


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
async def refresh_access_token(
    request: Request,
    response: Response,
    payload: Annotated[RefreshRequest | None, Body()] = None,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[TokenPair]:
    presented = request.cookies.get(REFRESH_COOKIE) or (
        payload.refresh_token if payload is not None else None
    )
    tokens = await service.refresh(presented)
    set_token_cookies(response, tokens.access_token, tokens.refresh_token, settings=settings)
    return ApiResponse(data=tokens, message="Access token refreshed successfully")


@router.patch("/change-password", response_model=ApiResponse[dict[str, Any]])
async def change_password(
    payload: ChangePasswordRequest,
    current_user: PublicUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[dict[str, Any]]:
    await service.change_password(
        current_user.id,
        old_password=payload.old_password,
        new_password=payload.new_password,
    )
    return ApiResponse(data={}, message="Password changed successfully")
