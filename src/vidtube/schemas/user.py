"""Pydantic schemas for accounts, tokens and channels.

Learn: Pydantic v2 models validate request/response data. Separate
request schemas (input) from "Read" schemas (output) for clean APIs.
Required-field checks that carry domain meaning (blank username, missing
identifier) live in the service so they surface as 400s, not 422s.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ─── Auth ───────────────────────────────────────────────

class RegisterRequest(BaseModel):
    username: str = Field(..., max_length=50)
    email: str = Field(..., max_length=255)
    fullname: str = Field(..., max_length=100)
    password: str


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


# ─── Users ──────────────────────────────────────────────

class UserRead(BaseModel):
    """Public user projection — never carries password or token hashes."""
    id: uuid.UUID
    username: str
    email: str
    fullname: str
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginResponse(TokenResponse):
    user: UserRead


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str


class AccountUpdate(BaseModel):
    fullname: Optional[str] = None
    email: Optional[str] = None


# ─── Channels ───────────────────────────────────────────

class ChannelProfileRead(BaseModel):
    id: uuid.UUID
    username: str
    fullname: str
    email: str
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool

    model_config = {"from_attributes": True}


class VideoOwnerRead(BaseModel):
    id: uuid.UUID
    username: str
    fullname: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class WatchedVideoRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration_seconds: int
    views: int
    watched_at: datetime
    owner: VideoOwnerRead

    model_config = {"from_attributes": True}
