"""Typed account errors.

Learn: Every failure the account core can produce is one of five kinds.
Callers match on the class (or on `kind`) instead of catching everything;
the HTTP layer turns each kind into a status code in one place (main.py).

    ValidationError   400  missing or malformed input
    Unauthorized      401  credential or token check failed
    NotFound          404  identity does not exist
    Conflict          409  duplicate identity
    InternalFailure   500  signing or store failure
"""


class AccountError(Exception):
    """Base class for all account errors."""

    kind = "account_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AccountError):
    kind = "validation_error"
    status_code = 400


class Unauthorized(AccountError):
    kind = "unauthorized"
    status_code = 401


class InvalidToken(Unauthorized):
    """A presented token was rejected.

    `reason` is for diagnostics only (malformed, expired, wrong_type,
    unknown_identity, superseded). Externally every reason is a 401.
    """

    def __init__(self, message: str = "Invalid refresh token", reason: str = "malformed"):
        super().__init__(message)
        self.reason = reason


class NotFound(AccountError):
    kind = "not_found"
    status_code = 404


class Conflict(AccountError):
    kind = "conflict"
    status_code = 409


class InternalFailure(AccountError):
    kind = "internal_failure"
    status_code = 500
