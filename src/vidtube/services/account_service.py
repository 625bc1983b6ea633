"""Account service — business logic for registration, login and profiles.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the user repository and the
auth core. Every failure is raised as a typed AccountError
(ValidationError / Unauthorized / NotFound / Conflict / InternalFailure)
and the HTTP layer maps the type to a status code.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog

from vidtube.auth.identity import PublicUserView, TokenPair, UserIdentity
from vidtube.auth.jwt import TokenIssuer, token_digest
from vidtube.auth.password import CredentialVerifier
from vidtube.auth.sessions import SessionTerminator, TokenRotationCoordinator
from vidtube.errors import (
    Conflict,
    InternalFailure,
    NotFound,
    Unauthorized,
    ValidationError,
)
from vidtube.media.uploader import MediaUploader
from vidtube.repositories.users import UserRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class LoginResult:
    tokens: TokenPair
    user: PublicUserView


def _require(**fields: Optional[str]) -> dict[str, str]:
    """Trim every field; any missing or blank one is a ValidationError."""
    cleaned = {}
    for name, value in fields.items():
        if value is None or not value.strip():
            raise ValidationError("All fields are required")
        cleaned[name] = value.strip()
    return cleaned


class AccountService:
    """Business logic for accounts and sessions."""

    def __init__(
        self,
        users: UserRepository,
        issuer: TokenIssuer,
        verifier: CredentialVerifier,
        uploader: Optional[MediaUploader] = None,
    ):
        self.users = users
        self.issuer = issuer
        self.verifier = verifier
        self.uploader = uploader
        self.rotation = TokenRotationCoordinator(users, issuer)
        self.terminator = SessionTerminator(users)

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        fullname: Optional[str],
        password: Optional[str],
    ) -> PublicUserView:
        """Create an account. Avatar and cover image are set later, through the media host."""
        fields = _require(
            username=username, email=email, fullname=fullname, password=password
        )
        username = fields["username"].lower()
        email = fields["email"].lower()

        if await self.users.exists(username, email):
            raise Conflict("User already exists")

        user = await self.users.create(
            username=username,
            email=email,
            fullname=fields["fullname"],
            password_hash=self.verifier.hash(password),
        )
        logger.info("auth.registered", user_id=str(user.id), username=username)
        return user.public_view()

    # ─── Sessions ───────────────────────────────────────

    async def login(self, identifier: Optional[str], password: Optional[str]) -> LoginResult:
        """Username-or-email + password → token pair + sanitized user.

        Learn: The refresh token is persisted with an unconditional
        overwrite, so logging in again invalidates any previous session.
        """
        if not identifier or not identifier.strip():
            raise ValidationError("Username or email is required")

        user = await self.users.find_by_username_or_email(identifier)
        if user is None:
            raise NotFound("User not found")

        if not self.verifier.verify(user, password):
            logger.info("auth.login_failed", user_id=str(user.id))
            raise Unauthorized("Invalid credentials")

        tokens = self.issuer.issue(user)
        await self.users.replace_refresh_token(user.id, token_digest(tokens.refresh_token))

        logger.info("auth.login_succeeded", user_id=str(user.id))
        return LoginResult(tokens=tokens, user=user.public_view())

    async def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise ValidationError("Refresh token is required")
        return await self.rotation.rotate(refresh_token)

    async def logout(self, user_id: uuid.UUID) -> None:
        await self.terminator.terminate(user_id)

    # ─── Profile ────────────────────────────────────────

    async def get_identity(self, user_id: uuid.UUID) -> UserIdentity:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_user(self, user_id: uuid.UUID) -> PublicUserView:
        return (await self.get_identity(user_id)).public_view()

    async def change_password(
        self, user_id: uuid.UUID, old_password: Optional[str], new_password: Optional[str]
    ) -> None:
        _require(new_password=new_password)
        user = await self.get_identity(user_id)
        if not self.verifier.verify(user, old_password):
            raise Unauthorized("Invalid credentials")
        await self.users.update_password(user.id, self.verifier.hash(new_password))
        logger.info("auth.password_changed", user_id=str(user.id))

    async def update_account(
        self, user_id: uuid.UUID, fullname: Optional[str], email: Optional[str]
    ) -> PublicUserView:
        fields = _require(fullname=fullname, email=email)
        email = fields["email"].lower()
        if await self.users.email_taken_by_other(email, user_id):
            raise Conflict("Email already registered")

        user = await self.users.update_profile(user_id, fields["fullname"], email)
        if user is None:
            raise NotFound("User not found")
        return user.public_view()

    # ─── Media ──────────────────────────────────────────

    async def update_avatar(
        self, user_id: uuid.UUID, data: bytes, filename: str = "avatar"
    ) -> PublicUserView:
        if not data:
            raise ValidationError("Avatar file is required")
        media = await self._uploader().upload(data, filename=filename, folder="avatars")
        user = await self.users.update_avatar(user_id, media.url)
        if user is None:
            raise NotFound("User not found")
        return user.public_view()

    async def update_cover_image(
        self, user_id: uuid.UUID, data: bytes, filename: str = "cover"
    ) -> PublicUserView:
        if not data:
            raise ValidationError("Cover image file is required")
        media = await self._uploader().upload(data, filename=filename, folder="covers")
        user = await self.users.update_cover_image(user_id, media.url)
        if user is None:
            raise NotFound("User not found")
        return user.public_view()

    def _uploader(self) -> MediaUploader:
        if self.uploader is None:
            raise InternalFailure("Media uploads are not enabled")
        return self.uploader
