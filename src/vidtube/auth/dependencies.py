"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. They build the auth
core from Settings (the only place the core meets process-wide config)
and resolve the current user from the request.

The access token is read from either:
1. Authorization: Bearer <token> header
2. access_token cookie (set by /auth/login and /auth/refresh)
"""

import uuid
from typing import Optional

from fastapi import Cookie, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.auth.identity import UserIdentity
from vidtube.auth.jwt import TokenConfig, TokenError, TokenIssuer
from vidtube.auth.password import CredentialVerifier
from vidtube.config import settings
from vidtube.db.engine import get_db
from vidtube.errors import Unauthorized
from vidtube.media.uploader import MediaHostConfig, MediaUploader
from vidtube.repositories.users import SqlUserRepository
from vidtube.services.account_service import AccountService


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(TokenConfig.from_settings(settings))


def get_credential_verifier() -> CredentialVerifier:
    return CredentialVerifier(rounds=settings.bcrypt_rounds)


def get_media_uploader() -> MediaUploader:
    return MediaUploader(MediaHostConfig.from_settings(settings))


def get_user_repository(db: AsyncSession = Depends(get_db)) -> SqlUserRepository:
    return SqlUserRepository(db)


def get_account_service(
    users: SqlUserRepository = Depends(get_user_repository),
    issuer: TokenIssuer = Depends(get_token_issuer),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> AccountService:
    return AccountService(users, issuer, verifier, uploader)


def _bearer_token(authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return cookie_token


async def get_current_user(
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None),
    issuer: TokenIssuer = Depends(get_token_issuer),
    users: SqlUserRepository = Depends(get_user_repository),
) -> UserIdentity:
    """Resolve the authenticated user (401 if missing or invalid).

    Learn: Access tokens are stateless — a valid signature and expiry is
    enough. The user row is still loaded so a deleted account stops
    working immediately and handlers get fresh profile data.
    """
    token = _bearer_token(authorization, access_token)
    if not token:
        raise Unauthorized("Authentication required")

    try:
        claims = issuer.decode_access(token)
    except TokenError as e:
        raise Unauthorized(str(e))

    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError):
        raise Unauthorized("Invalid access token")

    user = await users.find_by_id(user_id)
    if user is None:
        raise Unauthorized("Invalid access token")
    return user
