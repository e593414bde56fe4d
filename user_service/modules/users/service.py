"""
Account service facade.

Orchestrates registration, login, profile changes and the two password
flows (authenticated change and emailed reset). The API layer only calls
this facade; it holds no business logic of its own.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..auth.audit import AuditLog
from ..auth.errors import (
    DeliveryFailed,
    IdentityExists,
    IdentityNotFound,
    InvalidCredentials,
)
from ..auth.passwords import PasswordHasher
from ..auth.tokens import TokenCodec
from ..recovery.manager import ResetTokenManager
from ..recovery.rotation import CredentialRotation
from .addresses import AddressModule
from .models import Identity
from .store import RedisCredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionGrant:
    """Session token handed to a client after login or password change."""
    access_token: str
    expires_in: int
    identity: Identity
    token_type: str = "bearer"

    def __repr__(self) -> str:
        return f"SessionGrant(identity_ref={self.identity.id!r}, expires_in={self.expires_in})"


@dataclass(frozen=True)
class ResetRequestOutcome:
    """What the forgot-password endpoint may reveal to the caller."""
    accepted: bool = True
    delivered: bool = True


class AccountService:
    def __init__(
        self,
        credential_store: RedisCredentialStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        reset_manager: ResetTokenManager,
        rotation: CredentialRotation,
        addresses: AddressModule,
        audit: Optional[AuditLog] = None,
    ):
        self.credential_store = credential_store
        self.hasher = hasher
        self.codec = codec
        self.reset_manager = reset_manager
        self.rotation = rotation
        self.addresses = addresses
        self.audit = audit

    def _grant(self, identity: Identity) -> SessionGrant:
        token = self.codec.issue(identity.id, credential_version=identity.credential_version)
        return SessionGrant(access_token=token, expires_in=self.codec.default_ttl, identity=identity)

    async def _log(self, event_type: str, data: dict):
        if self.audit:
            await self.audit.log_event(event_type, data)

    async def register(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        phone: str = "",
    ) -> Identity:
        """
        Register a new identity.

        Raises:
            IdentityExists: Email already registered
            ValueError: Password rejected by the hasher
        """
        digest = await self.hasher.hash_async(password)
        identity = await self.credential_store.create(
            email=email,
            password_hash=digest,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        if identity is None:
            raise IdentityExists("Email already registered")

        await self._log("identity_registered", {"identity_ref": identity.id})
        return identity

    async def login(self, email: str, password: str) -> SessionGrant:
        """
        Verify email and password and issue a session token.

        Raises:
            InvalidCredentials: Unknown email, wrong password, or disabled account
        """
        identity = await self.credential_store.get_by_email(email)
        if identity is None:
            await self.hasher.matches_dummy_async(password)
            await self._log("login_failed", {"reason": "unknown_email"})
            raise InvalidCredentials("Invalid email or password")

        if not await self.hasher.matches_async(password, identity.password_hash):
            await self._log("login_failed", {"identity_ref": identity.id, "reason": "bad_password"})
            raise InvalidCredentials("Invalid email or password")

        if not identity.is_active:
            await self._log("login_failed", {"identity_ref": identity.id, "reason": "disabled"})
            raise InvalidCredentials("Invalid email or password")

        await self._log("login_succeeded", {"identity_ref": identity.id})
        return self._grant(identity)

    async def get_profile(self, identity_ref: str) -> Identity:
        identity = await self.credential_store.get_by_identifier(identity_ref)
        if identity is None:
            raise IdentityNotFound(f"Identity {identity_ref} not found")
        return identity

    async def update_profile(self, identity_ref: str, **fields) -> Identity:
        """Update profile fields; credential and status fields cannot be changed here."""
        identity = await self.get_profile(identity_ref)
        for name in ("first_name", "last_name", "phone"):
            value = fields.get(name)
            if value is not None:
                setattr(identity, name, value)
        return await self.credential_store.save(identity)

    async def change_password(self, identity_ref: str, current_password: str, new_password: str) -> SessionGrant:
        """
        Change password for an authenticated identity.

        Outstanding session tokens stop working; a fresh one is returned.

        Raises:
            InvalidCredentials: Current password does not match
            IdentityNotFound: Identity no longer exists
        """
        identity = await self.get_profile(identity_ref)
        if not await self.hasher.matches_async(current_password, identity.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        digest = await self.hasher.hash_async(new_password)
        identity = await self.rotation.apply(identity_ref, digest)
        return self._grant(identity)

    async def request_password_reset(self, email: str) -> ResetRequestOutcome:
        """
        Start the forgot-password flow.

        Unknown or disabled accounts get the same outcome as known ones so
        the endpoint cannot be used to discover registered emails.
        """
        identity = await self.credential_store.get_by_email(email)
        if identity is None or not identity.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return ResetRequestOutcome()

        try:
            await self.reset_manager.request(identity.id)
        except DeliveryFailed:
            return ResetRequestOutcome(delivered=False)
        return ResetRequestOutcome()

    async def reset_password(self, token: str, new_password: str) -> Identity:
        """
        Redeem a reset token and rotate the credential.

        Raises:
            RecoveryError subclasses: Token unusable
            IdentityNotFound: Account deleted after the token was issued
        """
        redemption = await self.reset_manager.redeem(token, new_password)
        return await self.rotation.apply(
            redemption.identity_ref, redemption.digest, redeemed_token_digest=redemption.token_digest
        )

    async def delete_account(self, identity_ref: str) -> None:
        """
        Delete an identity with its addresses and outstanding reset token.

        Raises:
            IdentityNotFound: Identity does not exist
        """
        await self.rotation.token_store.purge(identity_ref)
        await self.addresses.delete_all(identity_ref)
        if not await self.credential_store.delete(identity_ref):
            raise IdentityNotFound(f"Identity {identity_ref} not found")
        await self._log("identity_deleted", {"identity_ref": identity_ref})
