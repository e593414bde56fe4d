import json
import logging
import uuid
from datetime import UTC, datetime
from typing import Optional

from .models import Identity, IdentityStatus

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class RedisCredentialStore:
    def __init__(self, redis_client):
        """
        Initialize credential store.

        Args:
            redis_client: Async Redis client

        Keys:
            user:{id}            JSON identity record
            user:email:{email}   identity id index
        """
        self.redis = redis_client

    @staticmethod
    def _user_key(identity_ref: str) -> str:
        return f"user:{identity_ref}"

    @staticmethod
    def _email_key(email: str) -> str:
        return f"user:email:{normalize_email(email)}"

    async def create(
        self,
        email: str,
        password_hash: str,
        first_name: str = "",
        last_name: str = "",
        phone: str = "",
    ) -> Optional[Identity]:
        """
        Create a new identity.

        Returns:
            Created identity, or None if the email is already registered

        Logic:
        1. Claim the email index with SET NX (atomic uniqueness)
        2. Store the identity record
        """
        identity_ref = str(uuid.uuid4())
        now = datetime.now(UTC)

        claimed = await self.redis.set(self._email_key(email), identity_ref, nx=True)
        if not claimed:
            return None

        identity = Identity(
            id=identity_ref,
            email=normalize_email(email),
            password_hash=password_hash,
            status=IdentityStatus.ACTIVE,
            credential_version=1,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            created_at=now,
            updated_at=now,
        )
        await self.redis.set(self._user_key(identity_ref), json.dumps(identity.to_dict()))

        logger.info(f"Identity {identity_ref} registered")
        return identity

    async def get_by_identifier(self, identity_ref: str) -> Optional[Identity]:
        data = await self.redis.get(self._user_key(identity_ref))
        if data:
            return Identity.from_dict(json.loads(data))
        return None

    async def get_by_email(self, email: str) -> Optional[Identity]:
        identity_ref = await self.redis.get(self._email_key(email))
        if not identity_ref:
            return None
        return await self.get_by_identifier(identity_ref)

    async def save(self, identity: Identity) -> Identity:
        """Persist profile changes to an existing identity."""
        identity.updated_at = datetime.now(UTC)
        await self.redis.set(self._user_key(identity.id), json.dumps(identity.to_dict()))
        return identity

    async def update_credential(self, identity_ref: str, digest: str) -> Optional[Identity]:
        """
        Overwrite the stored digest and bump the credential version.

        Returns:
            Updated identity, or None if it does not exist
        """
        identity = await self.get_by_identifier(identity_ref)
        if identity is None:
            return None

        identity.password_hash = digest
        identity.credential_version += 1
        return await self.save(identity)

    async def set_status(self, identity_ref: str, status: IdentityStatus) -> Optional[Identity]:
        identity = await self.get_by_identifier(identity_ref)
        if identity is None:
            return None
        identity.status = status
        return await self.save(identity)

    async def delete(self, identity_ref: str) -> bool:
        """
        Delete an identity and its email index.

        Returns:
            True if the identity existed
        """
        identity = await self.get_by_identifier(identity_ref)
        if identity is None:
            return False

        await self.redis.delete(self._user_key(identity_ref), self._email_key(identity.email))
        logger.info(f"Identity {identity_ref} deleted")
        return True
