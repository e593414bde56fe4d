"""
Unit tests for the Redis reset token store.
"""

import json
from datetime import UTC, datetime, timedelta

import pytest

from user_service.modules.recovery.models import ResetTokenRecord, token_digest
from user_service.modules.recovery.store import RedisResetTokenStore


def _record(token="plain-token", identity_ref="u1", ttl=900):
    now = datetime.now(UTC)
    return ResetTokenRecord(
        token_digest=token_digest(token),
        identity_ref=identity_ref,
        issued_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )


class TestRedisResetTokenStore:
    @pytest.mark.asyncio
    async def test_save_stores_record_and_identity_pointer(self, mock_redis):
        store = RedisResetTokenStore(mock_redis, retention_seconds=60)
        record = _record()

        await store.save(record)

        calls = {call.args[0]: call.args for call in mock_redis.setex.call_args_list}
        record_key = f"reset:token:{record.token_digest}"
        assert record_key in calls
        assert calls["reset:identity:u1"][2] == record.token_digest

        _, ttl, payload = calls[record_key]
        assert 900 < ttl <= 960
        stored = json.loads(payload)
        assert stored["identity_ref"] == "u1"
        assert "consumed" not in stored

    @pytest.mark.asyncio
    async def test_save_never_stores_plaintext(self, mock_redis):
        store = RedisResetTokenStore(mock_redis)

        await store.save(_record(token="very-secret-plaintext"))

        for call in mock_redis.setex.call_args_list:
            assert "very-secret-plaintext" not in str(call)

    @pytest.mark.asyncio
    async def test_save_moves_identity_pointer_and_keeps_old_record(self, mock_redis):
        store = RedisResetTokenStore(mock_redis)

        await store.save(_record())

        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_ttl_follows_injected_clock(self, mock_redis, clock):
        store = RedisResetTokenStore(mock_redis, retention_seconds=60, clock=clock)
        record = ResetTokenRecord(
            token_digest=token_digest("plain-token"),
            identity_ref="u1",
            issued_at=clock(),
            expires_at=clock() + timedelta(seconds=900),
        )

        await store.save(record)

        assert {call.args[1] for call in mock_redis.setex.call_args_list} == {960}

    @pytest.mark.asyncio
    async def test_ttl_is_at_least_one_second_for_past_expiry(self, mock_redis):
        store = RedisResetTokenStore(mock_redis, retention_seconds=0)

        await store.save(_record(ttl=-100))

        for call in mock_redis.setex.call_args_list:
            assert call.args[1] >= 1

    @pytest.mark.asyncio
    async def test_find_by_token_missing(self, mock_redis):
        store = RedisResetTokenStore(mock_redis)
        assert await store.find_by_token("nope") is None

    @pytest.mark.asyncio
    async def test_find_by_token_reports_consumed(self, mock_redis):
        record = _record()
        mock_redis.get.return_value = json.dumps(record.to_dict())
        mock_redis.exists.return_value = 1
        store = RedisResetTokenStore(mock_redis)

        found = await store.find_by_token("plain-token")

        assert found.identity_ref == "u1"
        assert found.consumed is True
        mock_redis.exists.assert_called_once_with(f"reset:consumed:{record.token_digest}")

    @pytest.mark.asyncio
    async def test_is_current(self, mock_redis):
        mock_redis.get.return_value = token_digest("plain-token")
        store = RedisResetTokenStore(mock_redis)

        assert await store.is_current("plain-token", "u1") is True
        assert await store.is_current("other-token", "u1") is False

    @pytest.mark.asyncio
    async def test_mark_consumed_uses_set_nx_with_record_ttl(self, mock_redis, clock):
        store = RedisResetTokenStore(mock_redis, retention_seconds=120, clock=clock)
        record = ResetTokenRecord(
            token_digest=token_digest("plain-token"),
            identity_ref="u1",
            issued_at=clock(),
            expires_at=clock() + timedelta(seconds=7200),
        )

        assert await store.mark_consumed(record) is True
        mock_redis.set.assert_called_once_with(
            f"reset:consumed:{record.token_digest}", "1", nx=True, ex=7320
        )

        mock_redis.set.return_value = None
        assert await store.mark_consumed(record) is False

    @pytest.mark.asyncio
    async def test_supersede_without_outstanding_token(self, mock_redis):
        store = RedisResetTokenStore(mock_redis)

        assert await store.supersede("u1") is False
        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_supersede_removes_only_identity_pointer(self, mock_redis):
        mock_redis.get.return_value = "current-digest"
        store = RedisResetTokenStore(mock_redis)

        assert await store.supersede("u1") is True
        mock_redis.delete.assert_called_once_with("reset:identity:u1")

    @pytest.mark.asyncio
    async def test_supersede_with_stale_expected_digest(self, mock_redis):
        mock_redis.get.return_value = "newer-digest"
        store = RedisResetTokenStore(mock_redis)

        assert await store.supersede("u1", expected_digest="redeemed-digest") is False
        mock_redis.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_purge_deletes_record_and_marker(self, mock_redis):
        mock_redis.get.return_value = "current-digest"
        store = RedisResetTokenStore(mock_redis)

        await store.purge("u1")

        mock_redis.delete.assert_called_once_with(
            "reset:token:current-digest", "reset:consumed:current-digest", "reset:identity:u1"
        )


@pytest.mark.asyncio
async def test_consumption_is_single_winner(token_store):
    record = _record()
    await token_store.save(record)

    outcomes = [await token_store.mark_consumed(record) for _ in range(3)]

    assert outcomes == [True, False, False]
    found = await token_store.find_by_token("plain-token")
    assert found.consumed is True


@pytest.mark.asyncio
async def test_consumed_marker_outlives_long_reset_window(token_store, mock_redis_with_data):
    """With a window longer than retention, the marker lasts as long as the record."""
    token_store.retention_seconds = 60
    record = _record(ttl=7200)
    await token_store.save(record)
    await token_store.mark_consumed(record)

    ttls = mock_redis_with_data._ttls
    assert ttls[f"reset:consumed:{record.token_digest}"] >= ttls[f"reset:token:{record.token_digest}"]


@pytest.mark.asyncio
async def test_superseded_consumed_record_still_reports_consumed(token_store):
    record = _record()
    await token_store.save(record)
    await token_store.mark_consumed(record)

    await token_store.supersede("u1")

    found = await token_store.find_by_token("plain-token")
    assert found is not None
    assert found.consumed is True
    assert await token_store.is_current("plain-token", "u1") is False
