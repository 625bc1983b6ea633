"""Token issuer and signing interface tests."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from vidtube.auth.identity import UserIdentity
from vidtube.auth.jwt import (
    BadSignature,
    TokenConfig,
    TokenExpired,
    TokenIssuer,
    WrongTokenType,
    sign,
    token_digest,
    verify,
)


@pytest.fixture()
def alice():
    return UserIdentity(
        id=uuid.uuid4(),
        username="alice",
        email="alice@x.com",
        fullname="Alice Liddell",
        password_hash="$2b$04$unused",
    )


def test_access_token_carries_identity_claims(issuer, alice):
    pair = issuer.issue(alice)
    claims = issuer.decode_access(pair.access_token)
    assert claims["sub"] == str(alice.id)
    assert claims["type"] == "access"
    assert claims["username"] == "alice"
    assert claims["email"] == "alice@x.com"
    assert claims["fullname"] == "Alice Liddell"


def test_refresh_token_carries_only_the_id(issuer, alice):
    pair = issuer.issue(alice)
    claims = issuer.decode_refresh(pair.refresh_token)
    assert claims["sub"] == str(alice.id)
    assert claims["type"] == "refresh"
    assert "email" not in claims
    assert "username" not in claims


def test_expiries_follow_config(alice):
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    config = TokenConfig(
        access_secret="a",
        refresh_secret="r",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=10),
    )
    pair = TokenIssuer(config, clock=lambda: now).issue(alice)

    import jwt

    access = jwt.decode(pair.access_token, options={"verify_signature": False})
    refresh = jwt.decode(pair.refresh_token, options={"verify_signature": False})
    assert access["exp"] - access["iat"] == 15 * 60
    assert refresh["exp"] - refresh["iat"] == 10 * 86400


def test_secrets_are_independent(issuer, alice):
    """A refresh token is not accepted where an access token is expected, and vice versa."""
    pair = issuer.issue(alice)
    with pytest.raises(BadSignature):
        issuer.decode_access(pair.refresh_token)
    with pytest.raises(BadSignature):
        issuer.decode_refresh(pair.access_token)


def test_type_claim_is_checked(alice):
    """Even with a shared secret, the type claim keeps the two kinds apart."""
    shared = TokenIssuer(TokenConfig(access_secret="same", refresh_secret="same"))
    pair = shared.issue(alice)
    with pytest.raises(WrongTokenType):
        shared.decode_refresh(pair.access_token)


def test_pairs_issued_in_the_same_instant_differ(alice):
    now = datetime.now(timezone.utc)
    issuer = TokenIssuer(
        TokenConfig(access_secret="a", refresh_secret="r"), clock=lambda: now
    )
    first = issuer.issue(alice)
    second = issuer.issue(alice)
    assert first.refresh_token != second.refresh_token
    assert token_digest(first.refresh_token) != token_digest(second.refresh_token)


def test_expired_token_is_rejected(alice):
    long_ago = datetime.now(timezone.utc) - timedelta(days=30)
    issuer = TokenIssuer(
        TokenConfig(access_secret="a", refresh_secret="r"), clock=lambda: long_ago
    )
    pair = issuer.issue(alice)
    with pytest.raises(TokenExpired):
        issuer.decode_refresh(pair.refresh_token)
    with pytest.raises(TokenExpired):
        issuer.decode_access(pair.access_token)


def test_leeway_tolerates_small_clock_skew():
    issued = datetime.now(timezone.utc) - timedelta(seconds=62)
    token = sign({"sub": "u1"}, "s", timedelta(minutes=1), now=issued)

    with pytest.raises(TokenExpired):
        verify(token, "s")
    assert verify(token, "s", leeway=timedelta(seconds=30))["sub"] == "u1"


def test_tampered_token_is_rejected(issuer, alice):
    pair = issuer.issue(alice)
    header, payload, signature = pair.refresh_token.split(".")
    tampered = f"{header}.{payload}.{signature[:-4]}AAAA"
    with pytest.raises(BadSignature):
        issuer.decode_refresh(tampered)


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c", None])
def test_garbage_is_rejected(issuer, garbage):
    with pytest.raises(BadSignature):
        issuer.decode_refresh(garbage)


def test_token_digest_is_stable_sha256():
    assert token_digest("abc") == token_digest("abc")
    assert len(token_digest("abc")) == 64
