"""Refresh-token rotation and session termination.

Learn: Each user has at most one valid refresh token, stored as a digest
on the user row. Rotation exchanges that token for a new pair:

    decode → load user → compare digest → mint pair → compare-and-set

The compare-and-set is what makes rotation safe under concurrency. Two
requests presenting the same token can both pass the digest comparison,
but update_refresh_token only matches while the stored digest is still
the old one, so exactly one of them wins. The loser fails exactly like a
replayed token would.

Every rejection is an InvalidToken (401). The reason is logged for
diagnostics and never changes the response.
"""

import hmac
import uuid

import structlog

from vidtube.auth.identity import TokenPair
from vidtube.auth.jwt import (
    TokenExpired,
    TokenIssuer,
    TokenError,
    WrongTokenType,
    token_digest,
)
from vidtube.errors import InvalidToken
from vidtube.repositories.users import UserRepository

logger = structlog.get_logger()


class TokenRotationCoordinator:
    """Validates a refresh token against the session store and rotates it."""

    def __init__(self, users: UserRepository, issuer: TokenIssuer):
        self.users = users
        self.issuer = issuer

    async def rotate(self, presented_token: str) -> TokenPair:
        user_id = self._decode(presented_token)

        user = await self.users.find_by_id(user_id)
        if user is None:
            raise self._reject("unknown_identity", user_id)

        presented_hash = token_digest(presented_token)
        stored_hash = user.refresh_token_hash
        if not stored_hash or not hmac.compare_digest(stored_hash, presented_hash):
            raise self._reject("superseded", user_id)

        pair = self.issuer.issue(user)
        swapped = await self.users.update_refresh_token(
            user.id,
            token_digest(pair.refresh_token),
            expected_hash=presented_hash,
        )
        if not swapped:
            # Lost the race: another rotation replaced the digest first.
            raise self._reject("superseded", user_id)

        logger.info("auth.refresh_rotated", user_id=str(user_id))
        return pair

    def _decode(self, presented_token: str) -> uuid.UUID:
        try:
            claims = self.issuer.decode_refresh(presented_token)
        except TokenExpired:
            raise self._reject("expired")
        except WrongTokenType:
            raise self._reject("wrong_type")
        except TokenError:
            raise self._reject("malformed")

        try:
            return uuid.UUID(str(claims["sub"]))
        except (KeyError, ValueError):
            raise self._reject("malformed")

    @staticmethod
    def _reject(reason: str, user_id: uuid.UUID | None = None) -> InvalidToken:
        logger.info(
            "auth.refresh_rejected",
            reason=reason,
            user_id=str(user_id) if user_id else None,
        )
        return InvalidToken("Invalid refresh token", reason=reason)


class SessionTerminator:
    """Clears the stored refresh token. Idempotent."""

    def __init__(self, users: UserRepository):
        self.users = users

    async def terminate(self, user_id: uuid.UUID) -> None:
        await self.users.replace_refresh_token(user_id, None)
        logger.info("auth.session_terminated", user_id=str(user_id))
