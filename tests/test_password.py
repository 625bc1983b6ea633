"""Credential verifier tests.

Learn: A wrong password is an outcome, not an error — verify() must
return False (never raise) for mismatches, missing identities and
garbage hashes.
"""

import uuid

from vidtube.auth.identity import UserIdentity
from vidtube.auth.password import CredentialVerifier, hash_password, verify_password


def _identity(password_hash):
    return UserIdentity(
        id=uuid.uuid4(),
        username="alice",
        email="alice@x.com",
        fullname="Alice",
        password_hash=password_hash,
    )


def test_hash_is_salted_bcrypt():
    h1 = hash_password("pw1", rounds=4)
    h2 = hash_password("pw1", rounds=4)
    assert h1.startswith("$2")
    assert h1 != h2
    assert verify_password("pw1", h1)
    assert verify_password("pw1", h2)


def test_verify_correct_password(verifier):
    identity = _identity(verifier.hash("pw1"))
    assert verifier.verify(identity, "pw1") is True


def test_verify_wrong_password(verifier):
    identity = _identity(verifier.hash("pw1"))
    assert verifier.verify(identity, "pw2") is False


def test_verify_missing_identity_fails_closed(verifier):
    assert verifier.verify(None, "pw1") is False


def test_verify_missing_password_fails_closed(verifier):
    identity = _identity(verifier.hash("pw1"))
    assert verifier.verify(identity, None) is False


def test_verify_malformed_hash_fails_closed(verifier):
    assert verifier.verify(_identity("not-a-bcrypt-hash"), "pw1") is False
    assert verifier.verify(_identity(""), "pw1") is False


def test_passwords_beyond_72_bytes_are_truncated():
    """bcrypt only looks at the first 72 bytes."""
    base = "x" * 72
    h = hash_password(base + "tail-one", rounds=4)
    assert verify_password(base + "tail-two", h)


def test_rounds_are_configurable():
    assert CredentialVerifier(rounds=5).hash("pw1").startswith("$2b$05$")
