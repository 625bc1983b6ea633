"""User and channel API routes.

Learn: Every route here sits behind get_current_user (applied per route,
since handlers also need the resolved identity). Routes handle HTTP
concerns; AccountService and ChannelService hold the logic.

Avatar and cover image uploads take the raw image as the request body
(Content-Type image/*), with an optional X-Filename header.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.auth.dependencies import get_account_service, get_current_user
from vidtube.auth.identity import UserIdentity
from vidtube.db.engine import get_db
from vidtube.schemas.user import (
    AccountUpdate,
    ChangePasswordRequest,
    ChannelProfileRead,
    UserRead,
    WatchedVideoRead,
)
from vidtube.services.account_service import AccountService
from vidtube.services.channel_service import ChannelService

router = APIRouter()


def _channels(db: AsyncSession = Depends(get_db)) -> ChannelService:
    return ChannelService(db)


# ─── Current user ───────────────────────────────────────


@router.get("/users/me", response_model=UserRead)
async def get_me(user: UserIdentity = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    return user.public_view()


@router.patch("/users/me", response_model=UserRead)
async def update_account(
    body: AccountUpdate,
    user: UserIdentity = Depends(get_current_user),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.update_account(user.id, fullname=body.fullname, email=body.email)


@router.post("/users/me/password")
async def change_password(
    body: ChangePasswordRequest,
    user: UserIdentity = Depends(get_current_user),
    svc: AccountService = Depends(get_account_service),
):
    await svc.change_password(user.id, body.old_password, body.new_password)
    return {"changed": True}


# ─── Media ──────────────────────────────────────────────


@router.put("/users/me/avatar", response_model=UserRead)
async def update_avatar(
    request: Request,
    user: UserIdentity = Depends(get_current_user),
    svc: AccountService = Depends(get_account_service),
):
    data = await request.body()
    filename = request.headers.get("X-Filename", "avatar")
    return await svc.update_avatar(user.id, data, filename=filename)


@router.put("/users/me/cover-image", response_model=UserRead)
async def update_cover_image(
    request: Request,
    user: UserIdentity = Depends(get_current_user),
    svc: AccountService = Depends(get_account_service),
):
    data = await request.body()
    filename = request.headers.get("X-Filename", "cover")
    return await svc.update_cover_image(user.id, data, filename=filename)


# ─── Read models ────────────────────────────────────────


@router.get("/users/me/history", response_model=list[WatchedVideoRead])
async def watch_history(
    user: UserIdentity = Depends(get_current_user),
    channels: ChannelService = Depends(_channels),
):
    return await channels.get_watch_history(user.id)


@router.get("/channels/{username}", response_model=ChannelProfileRead)
async def channel_profile(
    username: str,
    user: UserIdentity = Depends(get_current_user),
    channels: ChannelService = Depends(_channels),
):
    return await channels.get_channel_profile(username, viewer_id=user.id)


@router.post("/channels/{username}/subscription", status_code=204)
async def subscribe(
    username: str,
    user: UserIdentity = Depends(get_current_user),
    channels: ChannelService = Depends(_channels),
):
    await channels.subscribe(user.id, username)


@router.delete("/channels/{username}/subscription", status_code=204)
async def unsubscribe(
    username: str,
    user: UserIdentity = Depends(get_current_user),
    channels: ChannelService = Depends(_channels),
):
    await channels.unsubscribe(user.id, username)
