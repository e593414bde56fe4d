"""Collaborator interfaces following Black Box Design principles."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..recovery.models import ResetTokenRecord
    from ..users.models import Identity


class CredentialStore(Protocol):
    """Protocol for the identity/credential store."""

    async def get_by_identifier(self, identity_ref: str) -> Optional[Identity]:
        ...

    async def get_by_email(self, email: str) -> Optional[Identity]:
        ...

    async def update_credential(self, identity_ref: str, digest: str) -> Optional[Identity]:
        """
        Replace the stored digest and bump the credential version.

        Returns:
            Updated identity, or None if it does not exist
        """
        ...


class ResetTokenStore(Protocol):
    """Protocol for reset token persistence."""

    async def save(self, record: ResetTokenRecord) -> None:
        """Persist a record, superseding any outstanding token for the same identity."""
        ...

    async def find_by_token(self, token: str) -> Optional[ResetTokenRecord]:
        ...

    async def is_current(self, token: str, identity_ref: str) -> bool:
        """Check the token is the identity's latest issued token."""
        ...

    async def mark_consumed(self, record: ResetTokenRecord) -> bool:
        """
        Atomically flip a record from unconsumed to consumed.

        Returns:
            True for exactly one caller per token, False if already consumed
        """
        ...

    async def supersede(self, identity_ref: str, expected_digest: Optional[str] = None) -> bool:
        """
        Invalidate the identity's outstanding token, if any.

        With expected_digest, only invalidate if that token is still current.
        """
        ...

    async def purge(self, identity_ref: str) -> None:
        """Delete the identity's token data outright."""
        ...


class EmailSender(Protocol):
    """Protocol for email delivery."""

    async def send(self, address: str, reset_link: str) -> None:
        """
        Deliver a password reset link.

        Raises:
            DeliveryFailed: If the message could not be handed off
        """
        ...
