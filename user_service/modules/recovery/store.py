import json
import logging
from typing import Optional

from ..auth.tokens import Clock, utc_now
from .models import ResetTokenRecord, token_digest

logger = logging.getLogger(__name__)


class RedisResetTokenStore:
    def __init__(self, redis_client, retention_seconds: int = 3600, clock: Clock = utc_now):
        """
        Initialize reset token store.

        Args:
            redis_client: Async Redis client
            retention_seconds: How long records outlive their expiry, so a late
                redemption reports "expired" rather than "not found"
            clock: Returns the current UTC time; must match the manager's clock

        Keys:
            reset:token:{digest}        JSON record
            reset:consumed:{digest}     consumption marker (SET NX), same TTL as the record
            reset:identity:{identity}   digest of the identity's current token
        """
        self.redis = redis_client
        self.retention_seconds = retention_seconds
        self._clock = clock

    def _ttl(self, record: ResetTokenRecord) -> int:
        remaining = int((record.expires_at - self._clock()).total_seconds())
        return max(max(remaining, 0) + self.retention_seconds, 1)

    async def save(self, record: ResetTokenRecord) -> None:
        """
        Persist a record as the identity's only outstanding token.

        Logic:
        1. Store the new record with TTL
        2. Point the identity index at it, which supersedes the previous token
        """
        ttl = self._ttl(record)
        await self.redis.setex(f"reset:token:{record.token_digest}", ttl, json.dumps(record.to_dict()))
        await self.redis.setex(f"reset:identity:{record.identity_ref}", ttl, record.token_digest)

    async def find_by_token(self, token: str) -> Optional[ResetTokenRecord]:
        digest = token_digest(token)
        data = await self.redis.get(f"reset:token:{digest}")
        if not data:
            return None

        consumed = await self.redis.exists(f"reset:consumed:{digest}") > 0
        return ResetTokenRecord.from_dict(json.loads(data), consumed=consumed)

    async def is_current(self, token: str, identity_ref: str) -> bool:
        current = await self.redis.get(f"reset:identity:{identity_ref}")
        return current == token_digest(token)

    async def mark_consumed(self, record: ResetTokenRecord) -> bool:
        """
        Atomically mark a record consumed.

        SET NX succeeds for exactly one caller, which makes this the single
        unconsumed -> consumed transition for the record. The marker lives
        as long as the record so a consumed token never reads as fresh.
        """
        consumed = await self.redis.set(
            f"reset:consumed:{record.token_digest}", "1", nx=True, ex=self._ttl(record)
        )
        return bool(consumed)

    async def supersede(self, identity_ref: str, expected_digest: Optional[str] = None) -> bool:
        """
        Invalidate the identity's outstanding token.

        Only the identity index is removed. Records stay until their TTL so a
        consumed token keeps reporting "already used".

        Args:
            identity_ref: Identity whose token is superseded
            expected_digest: Only supersede if this is still the current token

        Returns:
            True if a token was invalidated
        """
        index_key = f"reset:identity:{identity_ref}"
        current = await self.redis.get(index_key)
        if not current:
            return False
        if expected_digest is not None and current != expected_digest:
            return False

        await self.redis.delete(index_key)
        logger.debug(f"Superseded outstanding reset token for identity {identity_ref}")
        return True

    async def purge(self, identity_ref: str) -> None:
        """Remove the identity's current token record and index (account deletion)."""
        index_key = f"reset:identity:{identity_ref}"
        current = await self.redis.get(index_key)
        if current:
            await self.redis.delete(f"reset:token:{current}", f"reset:consumed:{current}", index_key)
        else:
            await self.redis.delete(index_key)
