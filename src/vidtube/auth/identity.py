"""User identity value types.

Learn: The repository hands the auth core a frozen UserIdentity instead of
a live ORM object. The core never touches the session, and the secret
fields (password hash, refresh token digest) can only leave through
public_view(), which drops them.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PublicUserView:
    """Sanitized user projection — safe to return to clients."""

    id: uuid.UUID
    username: str
    email: str
    fullname: str
    avatar_url: Optional[str]
    cover_image_url: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


@dataclass(frozen=True)
class UserIdentity:
    id: uuid.UUID
    username: str
    email: str
    fullname: str
    password_hash: Optional[str]
    refresh_token_hash: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def public_view(self) -> PublicUserView:
        return PublicUserView(
            id=self.id,
            username=self.username,
            email=self.email,
            fullname=self.fullname,
            avatar_url=self.avatar_url,
            cover_image_url=self.cover_image_url,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
