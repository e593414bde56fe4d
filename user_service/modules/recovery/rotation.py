import logging
from typing import Optional

from ..auth.audit import AuditLog
from ..auth.errors import IdentityNotFound
from ..auth.interfaces import CredentialStore, ResetTokenStore
from ..users.models import Identity

logger = logging.getLogger(__name__)


class CredentialRotation:
    """
    Applies a new password digest to the stored identity.

    The store bumps the identity's credential version, so session tokens
    stamped with the old version stop passing the auth gate. The identity's
    outstanding reset token is superseded, unless a reset issued after the
    redeemed one is already pending.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        token_store: ResetTokenStore,
        audit: Optional[AuditLog] = None,
    ):
        self.credential_store = credential_store
        self.token_store = token_store
        self.audit = audit

    async def apply(
        self,
        identity_ref: str,
        new_digest: str,
        redeemed_token_digest: Optional[str] = None,
    ) -> Identity:
        """
        Overwrite the stored credential.

        Args:
            identity_ref: Identity whose password changes
            new_digest: Password digest to store
            redeemed_token_digest: Reset token that authorized the change; when
                given, a token issued after it is left outstanding

        Raises:
            IdentityNotFound: Identity no longer exists
        """
        identity = await self.credential_store.update_credential(identity_ref, new_digest)
        if identity is None:
            raise IdentityNotFound(f"Identity {identity_ref} not found")

        await self.token_store.supersede(identity_ref, expected_digest=redeemed_token_digest)

        if self.audit:
            await self.audit.log_event(
                "credential_rotated",
                {"identity_ref": identity_ref, "credential_version": identity.credential_version},
            )

        logger.info(f"Credential rotated for identity {identity_ref}")
        return identity
