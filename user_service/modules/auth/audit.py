"""Security event audit trail stored in a capped Redis list."""

import json
import logging
from datetime import UTC, datetime
from typing import Optional

logger = logging.getLogger(__name__)

AUDIT_KEY = "auth:audit"
MAX_EVENTS = 10000


class AuditLog:
    """
    Appends security events to a Redis list for audit.

    Event data must never contain tokens, passwords or digests.
    """

    def __init__(self, redis_client, key: str = AUDIT_KEY, max_events: int = MAX_EVENTS):
        self.redis = redis_client
        self.key = key
        self.max_events = max_events

    async def log_event(self, event_type: str, data: dict, correlation_id: Optional[str] = None):
        """
        Log security event for audit.

        Args:
            event_type: Type of security event
            data: Event data
            correlation_id: Optional request correlation ID
        """
        event = {
            "type": event_type,
            "data": data,
            "correlation_id": correlation_id,
            "timestamp": datetime.now(UTC).isoformat(),
        }

        if not self.redis:
            logger.info(f"Audit event {event_type}: {data}")
            return

        await self.redis.lpush(self.key, json.dumps(event))
        await self.redis.ltrim(self.key, 0, self.max_events - 1)
