"""
Reset token manager.

Issues one-time password reset tokens, delivers them through the email
collaborator, and redeems them exactly once.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

from ..auth.audit import AuditLog
from ..auth.errors import (
    DeliveryFailed,
    IdentityNotFound,
    TokenAlreadyUsed,
    TokenExpired,
    TokenNotFound,
)
from ..auth.interfaces import CredentialStore, EmailSender, ResetTokenStore
from ..auth.passwords import PasswordHasher
from ..auth.tokens import Clock, utc_now
from .models import Redemption, ResetIssue, ResetTokenRecord, token_digest

logger = logging.getLogger(__name__)

# 32 bytes = 256 bits of entropy
TOKEN_BYTES = 32


class ResetTokenManager:
    """
    Password reset token lifecycle.

    Tokens are random and unrelated to identity data or session tokens.
    Issuing a new token supersedes the previous one, and a token can be
    redeemed once. The plaintext token is never logged or persisted.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        token_store: ResetTokenStore,
        email_sender: EmailSender,
        hasher: PasswordHasher,
        ttl_seconds: int = 900,
        link_base_url: str = "http://localhost:8002/reset-password",
        audit: Optional[AuditLog] = None,
        clock: Clock = utc_now,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.credential_store = credential_store
        self.token_store = token_store
        self.email_sender = email_sender
        self.hasher = hasher
        self.ttl_seconds = ttl_seconds
        self.link_base_url = link_base_url
        self.audit = audit
        self._clock = clock

    def build_link(self, token: str) -> str:
        separator = "&" if "?" in self.link_base_url else "?"
        return f"{self.link_base_url}{separator}{urlencode({'token': token})}"

    async def request(self, identity_ref: str) -> ResetIssue:
        """
        Issue a reset token for an identity and email it.

        Args:
            identity_ref: Identity requesting the reset

        Returns:
            The issued token and its expiry

        Raises:
            IdentityNotFound: Unknown or disabled identity
            DeliveryFailed: Token was persisted but the email was not sent;
                the exception carries the ResetIssue for a retry

        Logic:
        1. Resolve the identity (for its email address)
        2. Generate a random token
        3. Persist it, superseding any outstanding token
        4. Hand the link to the email sender
        """
        identity = await self.credential_store.get_by_identifier(identity_ref)
        if identity is None or not identity.is_active:
            raise IdentityNotFound(f"Identity {identity_ref} not found")

        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self._clock()
        record = ResetTokenRecord(
            token_digest=token_digest(token),
            identity_ref=identity.id,
            issued_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        await self.token_store.save(record)

        issue = ResetIssue(
            token=token,
            identity_ref=identity.id,
            email=identity.email,
            expires_at=record.expires_at,
        )

        if self.audit:
            await self.audit.log_event(
                "password_reset_requested",
                {"identity_ref": identity.id, "expires_at": record.expires_at.isoformat()},
            )

        await self.deliver(issue)
        return issue

    async def deliver(self, issue: ResetIssue) -> None:
        """
        Send (or resend) the reset link for an issued token.

        Raises:
            DeliveryFailed: With the issue attached so the caller may retry
        """
        try:
            await self.email_sender.send(issue.email, self.build_link(issue.token))
        except DeliveryFailed as e:
            logger.warning(f"Reset email delivery failed for identity {issue.identity_ref}: {e}")
            raise DeliveryFailed(str(e), issue=issue) from e

        logger.info(f"Reset email sent for identity {issue.identity_ref}")

    async def redeem(self, token: str, new_plaintext: str) -> Redemption:
        """
        Consume a reset token and hash the new password.

        Args:
            token: Plaintext reset token from the emailed link
            new_plaintext: New password

        Returns:
            Identity reference and new digest for credential rotation

        Raises:
            TokenNotFound: Unknown or superseded token
            TokenExpired: Past the reset window
            TokenAlreadyUsed: Token was consumed, including by a concurrent redeemer
            ValueError: New password rejected by the hasher (token stays valid)
        """
        if not token:
            raise TokenNotFound("Reset token not found")

        record = await self.token_store.find_by_token(token)
        if record is None:
            raise TokenNotFound("Reset token not found")
        if record.is_expired(self._clock()):
            raise TokenExpired("Reset token expired")
        if record.consumed:
            raise TokenAlreadyUsed("Reset token already used")
        if not await self.token_store.is_current(token, record.identity_ref):
            raise TokenNotFound("Reset token not found")

        # Hash before consuming so a rejected password does not burn the token
        digest = await self.hasher.hash_async(new_plaintext)

        if not await self.token_store.mark_consumed(record):
            raise TokenAlreadyUsed("Reset token already used")

        if self.audit:
            await self.audit.log_event("password_reset_redeemed", {"identity_ref": record.identity_ref})

        return Redemption(identity_ref=record.identity_ref, digest=digest, token_digest=record.token_digest)
