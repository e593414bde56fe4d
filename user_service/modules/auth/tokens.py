"""
Session token codec.

Issues and verifies stateless HS256 JWTs. A token carries the identity
reference (``sub``), issue and expiry timestamps, and the identity's
credential version (``cv``). The ``kid`` header names the signing key so
secrets can be rotated without invalidating tokens signed by older keys.

Verification is a pure function of the token, the keyring and the clock.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Callable, Mapping, Optional

import jwt

from .errors import Expired, InvalidSignature

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class KeyRing:
    """Immutable set of signing secrets indexed by key id."""

    def __init__(self, secrets: Mapping[str, str], active_key_id: str):
        if active_key_id not in secrets:
            raise ValueError(f"Unknown active key id: {active_key_id}")
        self._secrets = MappingProxyType(dict(secrets))
        self.active_key_id = active_key_id

    @property
    def active_secret(self) -> str:
        return self._secrets[self.active_key_id]

    def get(self, key_id: Optional[str]) -> Optional[str]:
        if key_id is None:
            return None
        return self._secrets.get(key_id)

    def __contains__(self, key_id: str) -> bool:
        return key_id in self._secrets

    def __repr__(self) -> str:
        return f"KeyRing(key_ids={list(self._secrets)}, active={self.active_key_id!r})"


@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of a session token."""
    identity_ref: str
    issued_at: int
    expires_at: int
    credential_version: Optional[int] = None
    key_id: Optional[str] = None


class TokenCodec:
    """
    Issues and verifies signed session tokens.

    Args:
        keyring: Signing keys; the active one signs new tokens
        default_ttl: Token lifetime in seconds used when issue() gets none
        clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(self, keyring: KeyRing, default_ttl: int = 86400, clock: Clock = utc_now):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.keyring = keyring
        self.default_ttl = default_ttl
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock().timestamp())

    def issue(
        self,
        identity_ref: str,
        ttl: Optional[int] = None,
        credential_version: Optional[int] = None,
    ) -> str:
        """
        Create a signed session token.

        Args:
            identity_ref: Identity the token asserts
            ttl: Lifetime in seconds (defaults to the codec's default_ttl)
            credential_version: Credential version stamp checked by the auth gate

        Returns:
            Encoded JWT string
        """
        if not identity_ref:
            raise ValueError("identity_ref is required")

        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        now = self._now()
        payload = {
            "sub": identity_ref,
            "iat": now,
            "exp": now + ttl,
        }
        if credential_version is not None:
            payload["cv"] = credential_version

        return jwt.encode(
            payload,
            self.keyring.active_secret,
            algorithm=ALGORITHM,
            headers={"kid": self.keyring.active_key_id},
        )

    def verify_claims(self, token: str) -> SessionClaims:
        """
        Verify a token and return its claims.

        Signature integrity is checked before anything else; every failure
        at that stage is reported as InvalidSignature so callers cannot
        tell a malformed payload from a forged one.

        Raises:
            InvalidSignature: Malformed token, unknown key id, or bad signature
            Expired: Valid signature but current time is past expiry
        """
        if not token:
            raise InvalidSignature("Invalid token")

        try:
            header = jwt.get_unverified_header(token)
            secret = self.keyring.get(header.get("kid"))
            if secret is None:
                raise InvalidSignature("Invalid token")

            # Expiry is checked below against the injected clock
            payload = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": ["sub", "iat", "exp"]},
            )
            claims = SessionClaims(
                identity_ref=str(payload["sub"]),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
                credential_version=payload.get("cv"),
                key_id=header.get("kid"),
            )
        except InvalidSignature:
            raise
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Token rejected at signature stage: {type(e).__name__}")
            raise InvalidSignature("Invalid token") from None

        if self._now() > claims.expires_at:
            raise Expired("Token expired")

        return claims

    def verify(self, token: str) -> str:
        """
        Verify a token and return the identity reference it asserts.

        Raises:
            InvalidSignature: See verify_claims()
            Expired: See verify_claims()
        """
        return self.verify_claims(token).identity_ref
