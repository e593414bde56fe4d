"""
Shared pytest fixtures for User Service tests.

This module provides common fixtures including:
- Redis mocks (call-recording and in-memory storage-backed)
- A controllable clock for expiry tests
- Pre-wired auth and recovery components
"""

import fnmatch
import os
import sys
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from user_service.modules.auth.audit import AuditLog
from user_service.modules.auth.gate import AuthGate
from user_service.modules.auth.passwords import PasswordHasher
from user_service.modules.auth.tokens import KeyRing, TokenCodec
from user_service.modules.email.sender import LoggingEmailSender
from user_service.modules.recovery.manager import ResetTokenManager
from user_service.modules.recovery.rotation import CredentialRotation
from user_service.modules.recovery.store import RedisResetTokenStore
from user_service.modules.users.addresses import AddressModule
from user_service.modules.users.service import AccountService
from user_service.modules.users.store import RedisCredentialStore

TEST_SECRET = "test-signing-secret-0123456789abcdef"
OLD_SECRET = "old-signing-secret-0123456789abcdef!"

# Minimum bcrypt cost keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Deterministic UTC clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, tzinfo=UTC)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================


@pytest.fixture
def mock_redis():
    """Create a call-recording mock Redis client for async operations."""
    redis = AsyncMock()

    redis.setex = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)

    redis.lpush = AsyncMock()
    redis.ltrim = AsyncMock()

    redis.hset = AsyncMock()
    redis.hget = AsyncMock(return_value=None)
    redis.hgetall = AsyncMock(return_value={})
    redis.hdel = AsyncMock(return_value=0)

    redis.ping = AsyncMock(return_value=True)

    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    This allows testing code that reads back what it writes. Each operation
    completes without yielding to the event loop, so SET NX behaves
    atomically just as it does on a real server. TTLs are recorded but not
    enforced.
    """
    storage = {}
    hashes = {}
    lists = {}
    ttls = {}

    redis = AsyncMock()

    async def mock_set(key, value, *args, nx=False, ex=None, **kwargs):
        if nx and key in storage:
            return None
        storage[key] = value
        if ex is not None:
            ttls[key] = ex
        return True

    async def mock_setex(key, ttl, value):
        storage[key] = value
        ttls[key] = ttl
        return True

    async def mock_get(key):
        return storage.get(key)

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            for container in (storage, hashes, lists):
                if key in container:
                    del container[key]
                    count += 1
        return count

    async def mock_exists(*keys):
        return sum(1 for k in keys if k in storage or k in hashes or k in lists)

    async def mock_keys(pattern):
        return [k for k in list(storage) + list(hashes) if fnmatch.fnmatch(k, pattern)]

    async def mock_hset(key, field, value):
        hashes.setdefault(key, {})[field] = value
        return 1

    async def mock_hget(key, field):
        return hashes.get(key, {}).get(field)

    async def mock_hgetall(key):
        return dict(hashes.get(key, {}))

    async def mock_hdel(key, *fields):
        bucket = hashes.get(key, {})
        removed = 0
        for field in fields:
            if field in bucket:
                del bucket[field]
                removed += 1
        return removed

    async def mock_lpush(key, *values):
        bucket = lists.setdefault(key, [])
        for value in values:
            bucket.insert(0, value)
        return len(bucket)

    async def mock_ltrim(key, start, end):
        if key in lists:
            lists[key] = lists[key][start:end + 1]
        return True

    async def mock_ping():
        return True

    redis.set = mock_set
    redis.setex = mock_setex
    redis.get = mock_get
    redis.delete = mock_delete
    redis.exists = mock_exists
    redis.keys = mock_keys
    redis.hset = mock_hset
    redis.hget = mock_hget
    redis.hgetall = mock_hgetall
    redis.hdel = mock_hdel
    redis.lpush = mock_lpush
    redis.ltrim = mock_ltrim
    redis.ping = mock_ping

    # Expose for test assertions
    redis._storage = storage
    redis._hashes = hashes
    redis._lists = lists
    redis._ttls = ttls

    return redis


# =============================================================================
# Auth / Recovery Components
# =============================================================================


@pytest.fixture
def keyring():
    return KeyRing({"k1": TEST_SECRET}, "k1")


@pytest.fixture
def codec(keyring, clock):
    return TokenCodec(keyring, default_ttl=3600, clock=clock)


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def credential_store(mock_redis_with_data):
    return RedisCredentialStore(mock_redis_with_data)


@pytest.fixture
def token_store(mock_redis_with_data, clock):
    return RedisResetTokenStore(mock_redis_with_data, clock=clock)


@pytest.fixture
def audit(mock_redis_with_data):
    return AuditLog(mock_redis_with_data)


@pytest.fixture
def email_sender():
    return LoggingEmailSender()


@pytest.fixture
def reset_manager(credential_store, token_store, email_sender, hasher, audit, clock):
    return ResetTokenManager(
        credential_store=credential_store,
        token_store=token_store,
        email_sender=email_sender,
        hasher=hasher,
        ttl_seconds=900,
        link_base_url="https://accounts.example.com/reset-password",
        audit=audit,
        clock=clock,
    )


@pytest.fixture
def rotation(credential_store, token_store, audit):
    return CredentialRotation(credential_store, token_store, audit=audit)


@pytest.fixture
def accounts(credential_store, hasher, codec, reset_manager, rotation, mock_redis_with_data, audit):
    return AccountService(
        credential_store=credential_store,
        hasher=hasher,
        codec=codec,
        reset_manager=reset_manager,
        rotation=rotation,
        addresses=AddressModule(mock_redis_with_data),
        audit=audit,
    )


@pytest.fixture
def gate(codec, credential_store):
    return AuthGate(codec, credential_store=credential_store, check_credential_version=True)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time to run"
    )
