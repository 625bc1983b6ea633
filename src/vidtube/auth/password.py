"""Password hashing and the credential verifier.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and checkpw compares in constant time. The work factor
is configurable so tests can use the minimum (4) while production keeps 12.
"""

from typing import Optional

import bcrypt

from vidtube.auth.identity import UserIdentity


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Malformed hashes fail."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


class CredentialVerifier:
    """Checks a presented password against an identity's stored hash.

    Fails closed: a missing identity, a missing hash or a mismatch all
    return False. A wrong password is an authentication outcome, not an
    error, so this never raises for it.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def verify(self, identity: Optional[UserIdentity], password: Optional[str]) -> bool:
        if identity is None or not identity.password_hash or password is None:
            return False
        return verify_password(password, identity.password_hash)

    def hash(self, password: str) -> str:
        return hash_password(password, rounds=self.rounds)
