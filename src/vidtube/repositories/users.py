"""User repository — the store interface consumed by the auth core.

Learn: The auth core never imports SQLAlchemy. It talks to a
UserRepository protocol and receives frozen UserIdentity values back.
SqlUserRepository is the production implementation; tests can swap in
anything with the same async methods.

The one method with real concurrency semantics is update_refresh_token:
a single conditional UPDATE (compare-and-set) whose affected row count
tells the caller whether it won. Two rotations racing with the same token
both pass validation, but only one UPDATE can still match the old digest.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional, Protocol

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.auth.identity import UserIdentity
from vidtube.db.models import User
from vidtube.errors import Conflict, InternalFailure

logger = structlog.get_logger()


class UserRepository(Protocol):
    async def find_by_id(self, user_id: uuid.UUID) -> Optional[UserIdentity]: ...

    async def find_by_username_or_email(self, value: str) -> Optional[UserIdentity]: ...

    async def exists(self, username: str, email: str) -> bool: ...

    async def create(
        self,
        username: str,
        email: str,
        fullname: str,
        password_hash: str,
    ) -> UserIdentity: ...

    async def replace_refresh_token(
        self, user_id: uuid.UUID, new_hash: Optional[str]
    ) -> None: ...

    async def update_refresh_token(
        self, user_id: uuid.UUID, new_hash: Optional[str], expected_hash: str
    ) -> bool: ...

    async def update_password(self, user_id: uuid.UUID, password_hash: str) -> None: ...

    async def update_profile(
        self, user_id: uuid.UUID, fullname: str, email: str
    ) -> Optional[UserIdentity]: ...

    async def email_taken_by_other(self, email: str, user_id: uuid.UUID) -> bool: ...

    async def update_avatar(
        self, user_id: uuid.UUID, url: str
    ) -> Optional[UserIdentity]: ...

    async def update_cover_image(
        self, user_id: uuid.UUID, url: str
    ) -> Optional[UserIdentity]: ...


def to_identity(user: User) -> UserIdentity:
    return UserIdentity(
        id=user.id,
        username=user.username,
        email=user.email,
        fullname=user.fullname,
        password_hash=user.password_hash,
        refresh_token_hash=user.refresh_token_hash,
        avatar_url=user.avatar_url,
        cover_image_url=user.cover_image_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class SqlUserRepository:
    """UserRepository backed by an AsyncSession. Every write commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _store_errors(self, operation: str):
        try:
            yield
        except IntegrityError as e:
            await self.db.rollback()
            raise Conflict("User already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("users.store_failed", operation=operation, error=str(e))
            raise InternalFailure("User store unavailable") from e

    async def _get(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    # ─── Reads ──────────────────────────────────────────

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[UserIdentity]:
        async with self._store_errors("find_by_id"):
            user = await self._get(user_id)
        return to_identity(user) if user else None

    async def find_by_username_or_email(self, value: str) -> Optional[UserIdentity]:
        needle = value.strip().lower()
        async with self._store_errors("find_by_username_or_email"):
            result = await self.db.execute(
                select(User)
                .where(or_(User.username == needle, User.email == needle))
                .execution_options(populate_existing=True)
            )
            user = result.scalars().first()
        return to_identity(user) if user else None

    async def exists(self, username: str, email: str) -> bool:
        """True if either value is already someone's username or email.

        Login matches one identifier against both columns, so the two
        columns share a single namespace.
        """
        taken = [username, email]
        async with self._store_errors("exists"):
            result = await self.db.execute(
                select(User.id).where(
                    or_(User.username.in_(taken), User.email.in_(taken))
                )
            )
            return result.first() is not None

    async def email_taken_by_other(self, email: str, user_id: uuid.UUID) -> bool:
        async with self._store_errors("email_taken_by_other"):
            result = await self.db.execute(
                select(User.id).where(
                    or_(User.email == email, User.username == email),
                    User.id != user_id,
                )
            )
            return result.first() is not None

    # ─── Writes ─────────────────────────────────────────

    async def create(
        self,
        username: str,
        email: str,
        fullname: str,
        password_hash: str,
    ) -> UserIdentity:
        user = User(
            username=username,
            email=email,
            fullname=fullname,
            password_hash=password_hash,
        )
        async with self._store_errors("create"):
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        return to_identity(user)

    async def replace_refresh_token(
        self, user_id: uuid.UUID, new_hash: Optional[str]
    ) -> None:
        """Unconditional overwrite — used at login and logout."""
        async with self._store_errors("replace_refresh_token"):
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(refresh_token_hash=new_hash)
            )
            await self.db.commit()

    async def update_refresh_token(
        self, user_id: uuid.UUID, new_hash: Optional[str], expected_hash: str
    ) -> bool:
        """Set the refresh token only if the stored one still equals expected_hash.

        Returns False when another writer got there first.
        """
        async with self._store_errors("update_refresh_token"):
            result = await self.db.execute(
                update(User)
                .where(User.id == user_id, User.refresh_token_hash == expected_hash)
                .values(refresh_token_hash=new_hash)
            )
            await self.db.commit()
        return result.rowcount == 1

    async def update_password(self, user_id: uuid.UUID, password_hash: str) -> None:
        async with self._store_errors("update_password"):
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash)
            )
            await self.db.commit()

    async def update_profile(
        self, user_id: uuid.UUID, fullname: str, email: str
    ) -> Optional[UserIdentity]:
        async with self._store_errors("update_profile"):
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(fullname=fullname, email=email)
            )
            await self.db.commit()
        return await self.find_by_id(user_id)

    async def update_avatar(
        self, user_id: uuid.UUID, url: str
    ) -> Optional[UserIdentity]:
        return await self._set_column(user_id, "update_avatar", avatar_url=url)

    async def update_cover_image(
        self, user_id: uuid.UUID, url: str
    ) -> Optional[UserIdentity]:
        return await self._set_column(
            user_id, "update_cover_image", cover_image_url=url
        )

    async def _set_column(
        self, user_id: uuid.UUID, operation: str, **values
    ) -> Optional[UserIdentity]:
        async with self._store_errors(operation):
            await self.db.execute(
                update(User).where(User.id == user_id).values(**values)
            )
            await self.db.commit()
        return await self.find_by_id(user_id)
