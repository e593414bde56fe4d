"""
Auth Gate - request-level authentication for protected endpoints.

Each request moves from UNAUTHENTICATED to either AUTHENTICATED (identity
attached to request.state) or REJECTED. Every rejection looks the same to
the caller; the specific reason is only logged.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import HTTPException, Request

from .errors import InvalidToken
from .tokens import SessionClaims, TokenCodec

logger = logging.getLogger(__name__)

REJECTION_MESSAGE = "Invalid or expired token"


class GateState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity resolved for the current request."""
    identity_ref: str
    claims: SessionClaims


@dataclass
class AuthResult:
    """Outcome of running a request through the gate."""
    state: GateState
    identity: Optional[AuthenticatedIdentity] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == GateState.AUTHENTICATED


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthGate:
    """
    Authenticates requests with session tokens.

    Args:
        codec: Token codec used to verify signatures and expiry
        credential_store: Optional store; when given with check_credential_version,
            the identity must exist, be active, and match the token's version stamp
        check_credential_version: Reject tokens issued before the last password change
    """

    def __init__(self, codec: TokenCodec, credential_store=None, check_credential_version: bool = True):
        self.codec = codec
        self.credential_store = credential_store
        self.check_credential_version = check_credential_version and credential_store is not None

    async def authenticate(self, authorization: Optional[str]) -> AuthResult:
        """
        Decide whether a request with this Authorization header is authenticated.

        Returns:
            AuthResult in AUTHENTICATED or REJECTED state
        """
        token = extract_bearer_token(authorization)
        if token is None:
            return AuthResult(state=GateState.REJECTED, reason="missing_token")

        try:
            claims = self.codec.verify_claims(token)
        except InvalidToken as e:
            return AuthResult(state=GateState.REJECTED, reason=e.code)

        if self.check_credential_version:
            identity = await self.credential_store.get_by_identifier(claims.identity_ref)
            if identity is None:
                return AuthResult(state=GateState.REJECTED, reason="identity_not_found")
            if not identity.is_active:
                return AuthResult(state=GateState.REJECTED, reason="identity_disabled")
            if claims.credential_version != identity.credential_version:
                return AuthResult(state=GateState.REJECTED, reason="credential_rotated")

        return AuthResult(
            state=GateState.AUTHENTICATED,
            identity=AuthenticatedIdentity(identity_ref=claims.identity_ref, claims=claims),
        )

    async def __call__(self, request: Request) -> AuthenticatedIdentity:
        """FastAPI dependency for protected endpoints."""
        result = await self.authenticate(request.headers.get("Authorization"))

        if not result.ok:
            logger.debug(f"Rejected request to {request.url.path}: {result.reason}")
            raise HTTPException(
                status_code=401,
                detail=REJECTION_MESSAGE,
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.identity = result.identity
        return result.identity
