"""User API — accounts, sessions, profile, channel and history routes.

Learn: Routes for the whole user surface:
- POST /users/register → multipart form + avatar (+ cover image)
- POST /users/login → username or email + password → session cookies
- POST /users/refresh-token → rotate the refresh token
- POST /users/logout → drop the stored refresh token, clear cookies
- POST /users/change-password, GET /users/current-user
- PATCH /users/update-profile, /users/avatar, /users/cover-image
- GET /users/channel/{username}, GET /users/history

Handlers never catch domain errors; the boundary in mediahub.errors
turns them into responses.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.cookies import clear_session_cookies, set_session_cookies
from mediahub.auth.dependencies import (
    REFRESH_COOKIE,
    get_current_user,
    get_settings,
    get_token_service,
)
from mediahub.auth.tokens import TokenService
from mediahub.config import Settings
from mediahub.db.engine import get_db
from mediahub.errors import Unauthorized
from mediahub.schemas.channel import ChannelProfile, WatchHistoryItem
from mediahub.schemas.common import ApiResponse
from mediahub.schemas.user import (
    ChangePasswordRequest,
    LoginData,
    LoginRequest,
    RefreshRequest,
    TokenData,
    UpdateProfileRequest,
    UserPublic,
)
from mediahub.services.channel_service import ChannelService
from mediahub.services.media_storage import MediaStorage, get_media_storage
from mediahub.services.user_service import UserService

router = APIRouter(prefix="/users")


def _users(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage: MediaStorage = Depends(get_media_storage),
) -> UserService:
    return UserService(db, settings, storage)


def _channels(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ChannelService:
    return ChannelService(db, settings)


# ─── Register / login ───────────────────────────────────


@router.post("/register", response_model=ApiResponse[UserPublic], status_code=201)
async def register(
    fullname: str = Form(""),
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
    svc: UserService = Depends(_users),
):
    """Create an account. Uploads happen before the user row is written."""
    user = await svc.register(
        fullname=fullname,
        username=username,
        email=email,
        password=password,
        avatar=avatar,
        cover_image=cover_image,
    )
    return ApiResponse(status_code=201, data=user, message="User created successfully")


@router.post("/login", response_model=ApiResponse[LoginData])
async def login(
    body: LoginRequest,
    response: Response,
    svc: UserService = Depends(_users),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    """Username or email + password → session cookies and tokens."""
    user_id = await svc.authenticate(body.username, body.email, body.password)
    pair = await tokens.issue_token_pair(user_id)
    user = await svc.get_public(user_id)

    set_session_cookies(response, pair, settings)
    return ApiResponse(
        data=LoginData(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="User logged in successfully",
    )


# ─── Refresh / logout ───────────────────────────────────


@router.post("/refresh-token", response_model=ApiResponse[TokenData])
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    """Exchange the current refresh token (cookie or body) for a new pair."""
    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    if not incoming:
        raise Unauthorized("Unauthorized")

    pair = await tokens.rotate_on_refresh(incoming)

    set_session_cookies(response, pair, settings)
    return ApiResponse(
        data=TokenData(access_token=pair.access_token, refresh_token=pair.refresh_token),
        message="Refreshed access token successfully",
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    response: Response,
    user: UserPublic = Depends(get_current_user),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    await tokens.revoke(user.id)
    clear_session_cookies(response, settings)
    return ApiResponse(message="User logged out successfully")


# ─── Current user / profile ─────────────────────────────


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    user: UserPublic = Depends(get_current_user),
    svc: UserService = Depends(_users),
):
    await svc.change_password(user.id, body.old_password, body.new_password)
    return ApiResponse(message="Password changed successfully")


@router.get("/current-user", response_model=ApiResponse[UserPublic])
async def current_user(user: UserPublic = Depends(get_current_user)):
    return ApiResponse(data=user, message="Current user fetched successfully")


@router.patch("/update-profile", response_model=ApiResponse[UserPublic])
async def update_profile(
    body: UpdateProfileRequest,
    user: UserPublic = Depends(get_current_user),
    svc: UserService = Depends(_users),
):
    updated = await svc.update_profile(user.id, fullname=body.fullname, email=body.email)
    return ApiResponse(data=updated, message="Profile updated successfully")


@router.patch("/avatar", response_model=ApiResponse[UserPublic])
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    user: UserPublic = Depends(get_current_user),
    svc: UserService = Depends(_users),
):
    updated = await svc.update_avatar(user.id, avatar)
    return ApiResponse(data=updated, message="Avatar updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[UserPublic])
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None),
    user: UserPublic = Depends(get_current_user),
    svc: UserService = Depends(_users),
):
    updated = await svc.update_cover_image(user.id, cover_image)
    return ApiResponse(data=updated, message="Cover image updated successfully")


# ─── Channel / history ──────────────────────────────────


@router.get("/channel/{username}", response_model=ApiResponse[ChannelProfile])
async def channel_profile(
    username: str,
    user: UserPublic = Depends(get_current_user),
    svc: ChannelService = Depends(_channels),
):
    profile = await svc.get_channel_profile(user.id, username)
    return ApiResponse(data=profile, message="Channel fetched successfully")


@router.get("/history", response_model=ApiResponse[list[WatchHistoryItem]])
async def watch_history(
    user: UserPublic = Depends(get_current_user),
    svc: ChannelService = Depends(_channels),
):
    history = await svc.get_watch_history(user.id)
    return ApiResponse(data=history, message="Watch history fetched successfully")
