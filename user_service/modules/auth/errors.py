"""
Authentication and credential-recovery error taxonomy.

Modules raise these typed errors; the API layer decides how each one is
surfaced to the caller.
"""

from typing import Any, Optional


class AuthError(Exception):
    """Base class for all authentication errors."""

    code = "auth_error"


class InvalidToken(AuthError):
    """Session token could not be verified."""

    code = "invalid_token"


class InvalidSignature(InvalidToken):
    """Token is malformed, signed with an unknown key, or tampered with."""

    code = "invalid_signature"


class Expired(InvalidToken):
    """Token signature is valid but its lifetime has passed."""

    code = "expired"


class RecoveryError(AuthError):
    """Password reset token could not be redeemed."""

    code = "recovery_error"


class TokenNotFound(RecoveryError):
    code = "token_not_found"


class TokenExpired(RecoveryError):
    code = "token_expired"


class TokenAlreadyUsed(RecoveryError):
    code = "token_already_used"


class IdentityNotFound(AuthError):
    code = "identity_not_found"


class IdentityExists(AuthError):
    code = "identity_exists"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"


class DeliveryFailed(AuthError):
    """
    Email delivery failed.

    When raised by the reset flow, ``issue`` holds the already-persisted
    reset token so the caller can retry delivery without issuing a new one.
    """

    code = "delivery_failed"

    def __init__(self, message: str, issue: Optional[Any] = None):
        super().__init__(message)
        self.issue = issue
