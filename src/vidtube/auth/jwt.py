"""JWT signing, verification and the token issuer.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), carries identity claims for API calls
- Refresh token: long-lived (10 days), carries only the user id and is
  used solely to mint a new pair

The two token kinds are signed with independent secrets, so leaking the
access secret never lets anyone forge a long-lived refresh token.
Every token carries a random `jti`, which keeps two pairs minted for the
same user in the same second distinct.
"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from vidtube.auth.identity import TokenPair, UserIdentity
from vidtube.errors import InternalFailure

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpired(TokenError):
    pass


class BadSignature(TokenError):
    pass


class WrongTokenType(TokenError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def token_digest(token: str) -> str:
    """SHA-256 of a token — the value the session store keeps."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ─── Signing interface ───────────────────────────────────


def sign(
    claims: dict,
    secret: str,
    expires_in: timedelta,
    *,
    algorithm: str = "HS256",
    now: Optional[datetime] = None,
) -> str:
    """Sign claims into a JWT that expires `expires_in` after `now`."""
    issued_at = now or utcnow()
    payload = {
        **claims,
        "iat": issued_at,
        "exp": issued_at + expires_in,
        "jti": uuid.uuid4().hex,
    }
    try:
        return jwt.encode(payload, secret, algorithm=algorithm)
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        raise InternalFailure(f"Token signing failed: {e}") from e


def verify(
    token: str,
    secret: str,
    *,
    algorithm: str = "HS256",
    leeway: timedelta = timedelta(0),
) -> dict:
    """Verify and decode a JWT.

    Returns the claims dict on success.
    Raises TokenExpired or BadSignature on failure.
    """
    if not isinstance(token, str) or not token:
        raise BadSignature("Invalid token: empty")
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            leeway=leeway,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token has expired")
    except jwt.InvalidTokenError as e:
        raise BadSignature(f"Invalid token: {e}")


# ─── Token issuer ────────────────────────────────────────


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=10)
    algorithm: str = "HS256"
    leeway: timedelta = timedelta(seconds=5)

    @classmethod
    def from_settings(cls, settings) -> "TokenConfig":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
            algorithm=settings.jwt_algorithm,
            leeway=timedelta(seconds=settings.jwt_leeway_seconds),
        )


class TokenIssuer:
    """Mints and decodes access/refresh token pairs.

    Learn: issue() is a pure mint — it never touches the session store.
    Persisting the refresh token is the caller's job (login, rotation).
    """

    def __init__(
        self,
        config: TokenConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.clock = clock

    def issue(self, identity: UserIdentity) -> TokenPair:
        now = self.clock()
        access_token = sign(
            {
                "sub": str(identity.id),
                "type": ACCESS,
                "username": identity.username,
                "email": identity.email,
                "fullname": identity.fullname,
            },
            self.config.access_secret,
            self.config.access_ttl,
            algorithm=self.config.algorithm,
            now=now,
        )
        refresh_token = sign(
            {"sub": str(identity.id), "type": REFRESH},
            self.config.refresh_secret,
            self.config.refresh_ttl,
            algorithm=self.config.algorithm,
            now=now,
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def decode_access(self, token: str) -> dict:
        return self._decode(token, self.config.access_secret, ACCESS)

    def decode_refresh(self, token: str) -> dict:
        return self._decode(token, self.config.refresh_secret, REFRESH)

    def _decode(self, token: str, secret: str, expected_type: str) -> dict:
        claims = verify(
            token,
            secret,
            algorithm=self.config.algorithm,
            leeway=self.config.leeway,
        )
        if claims.get("type") != expected_type:
            raise WrongTokenType(f"Expected a {expected_type} token")
        return claims
