"""
Tests for the account service facade and credential rotation.
"""

from unittest.mock import AsyncMock

import pytest

from user_service.modules.auth.errors import (
    DeliveryFailed,
    IdentityExists,
    IdentityNotFound,
    InvalidCredentials,
    TokenAlreadyUsed,
    TokenNotFound,
)
from user_service.modules.recovery.rotation import CredentialRotation
from user_service.modules.users.models import IdentityStatus


async def _register(accounts, email="u1@example.com", password="password-1"):
    return await accounts.register(email=email, password=password, first_name="Ada")


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_stores_hashed_password(self, accounts, hasher):
        identity = await _register(accounts)

        assert identity.email == "u1@example.com"
        assert identity.first_name == "Ada"
        assert identity.credential_version == 1
        assert identity.password_hash != "password-1"
        assert hasher.matches("password-1", identity.password_hash)

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, accounts):
        await _register(accounts)
        with pytest.raises(IdentityExists):
            await _register(accounts, email=" U1@Example.com ")

    @pytest.mark.asyncio
    async def test_public_profile_hides_credentials(self, accounts):
        profile = (await _register(accounts)).public_profile()
        assert "password_hash" not in profile
        assert "credential_version" not in profile


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_issues_verifiable_token(self, accounts, codec):
        identity = await _register(accounts)

        grant = await accounts.login("u1@example.com", "password-1")

        assert codec.verify(grant.access_token) == identity.id
        assert grant.expires_in == codec.default_ttl
        assert grant.access_token not in repr(grant)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [("u1@example.com", "wrong-password"), ("nobody@example.com", "password-1")],
    )
    async def test_login_failures_look_the_same(self, accounts, email, password):
        await _register(accounts)
        with pytest.raises(InvalidCredentials) as exc_info:
            await accounts.login(email, password)
        assert str(exc_info.value) == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_disabled_account_cannot_login(self, accounts, credential_store):
        identity = await _register(accounts)
        await credential_store.set_status(identity.id, IdentityStatus.DISABLED)

        with pytest.raises(InvalidCredentials):
            await accounts.login("u1@example.com", "password-1")


class TestProfile:
    @pytest.mark.asyncio
    async def test_update_profile_ignores_protected_fields(self, accounts):
        identity = await _register(accounts)

        updated = await accounts.update_profile(
            identity.id, last_name="Lovelace", phone=None, password_hash="x", credential_version=9
        )

        assert updated.last_name == "Lovelace"
        assert updated.first_name == "Ada"
        assert updated.credential_version == 1
        assert updated.password_hash == identity.password_hash

    @pytest.mark.asyncio
    async def test_get_profile_unknown(self, accounts):
        with pytest.raises(IdentityNotFound):
            await accounts.get_profile("missing")


class TestPasswordChange:
    @pytest.mark.asyncio
    async def test_change_password_rotates_credential(self, accounts, gate):
        identity = await _register(accounts)
        old_grant = await accounts.login("u1@example.com", "password-1")

        new_grant = await accounts.change_password(identity.id, "password-1", "password-2")

        assert not (await gate.authenticate(f"Bearer {old_grant.access_token}")).ok
        assert (await gate.authenticate(f"Bearer {new_grant.access_token}")).ok
        await accounts.login("u1@example.com", "password-2")
        with pytest.raises(InvalidCredentials):
            await accounts.login("u1@example.com", "password-1")

    @pytest.mark.asyncio
    async def test_change_password_requires_current(self, accounts):
        identity = await _register(accounts)
        with pytest.raises(InvalidCredentials):
            await accounts.change_password(identity.id, "not-it", "password-2")

    @pytest.mark.asyncio
    async def test_change_password_supersedes_reset_token(self, accounts, reset_manager):
        identity = await _register(accounts)
        issue = await reset_manager.request(identity.id)

        await accounts.change_password(identity.id, "password-1", "password-2")

        with pytest.raises(TokenNotFound):
            await reset_manager.redeem(issue.token, "password-3")


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_reset_flow(self, accounts, reset_manager):
        await _register(accounts)
        reset_manager.email_sender = AsyncMock()

        outcome = await accounts.request_password_reset("u1@example.com")
        assert outcome.accepted and outcome.delivered

        _, link = reset_manager.email_sender.send.call_args.args
        token = link.split("token=", 1)[1]

        await accounts.reset_password(token, "password-2")
        await accounts.login("u1@example.com", "password-2")

        with pytest.raises(TokenAlreadyUsed):
            await accounts.reset_password(token, "password-3")

    @pytest.mark.asyncio
    async def test_unknown_email_gets_same_outcome(self, accounts, reset_manager):
        reset_manager.email_sender = AsyncMock()

        outcome = await accounts.request_password_reset("nobody@example.com")

        assert outcome.accepted and outcome.delivered
        reset_manager.email_sender.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_delivery_failure_reported_not_raised(self, accounts, reset_manager):
        await _register(accounts)
        reset_manager.email_sender = AsyncMock()
        reset_manager.email_sender.send.side_effect = DeliveryFailed("down")

        outcome = await accounts.request_password_reset("u1@example.com")

        assert outcome.accepted is True
        assert outcome.delivered is False

    @pytest.mark.asyncio
    async def test_reset_invalidates_sessions(self, accounts, reset_manager, gate):
        identity = await _register(accounts)
        grant = await accounts.login("u1@example.com", "password-1")
        issue = await reset_manager.request(identity.id)

        await accounts.reset_password(issue.token, "password-2")

        assert (await gate.authenticate(f"Bearer {grant.access_token}")).reason == "credential_rotated"


class TestDeletion:
    @pytest.mark.asyncio
    async def test_delete_account_removes_everything(self, accounts, reset_manager, mock_redis_with_data):
        identity = await _register(accounts)
        await accounts.addresses.add_address(identity.id, street="1 Main St", city="Springfield")
        issue = await reset_manager.request(identity.id)

        await accounts.delete_account(identity.id)

        assert await accounts.credential_store.get_by_identifier(identity.id) is None
        assert await accounts.credential_store.get_by_email("u1@example.com") is None
        assert await accounts.addresses.list_addresses(identity.id) == []
        assert await reset_manager.token_store.find_by_token(issue.token) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_account(self, accounts):
        with pytest.raises(IdentityNotFound):
            await accounts.delete_account("missing")

    @pytest.mark.asyncio
    async def test_email_can_be_reused_after_deletion(self, accounts):
        identity = await _register(accounts)
        await accounts.delete_account(identity.id)

        again = await _register(accounts)
        assert again.id != identity.id


class TestCredentialRotation:
    @pytest.mark.asyncio
    async def test_apply_bumps_version_and_audits(self, rotation, credential_store, hasher, mock_redis_with_data):
        identity = await credential_store.create(email="u1@example.com", password_hash=hasher.hash("a-password"))

        updated = await rotation.apply(identity.id, hasher.hash("b-password"))

        assert updated.credential_version == 2
        assert hasher.matches("b-password", updated.password_hash)
        assert any("credential_rotated" in e for e in mock_redis_with_data._lists["auth:audit"])

    @pytest.mark.asyncio
    async def test_apply_unknown_identity(self, rotation):
        with pytest.raises(IdentityNotFound):
            await rotation.apply("missing", "digest")

    @pytest.mark.asyncio
    async def test_apply_without_audit(self, credential_store, token_store, hasher):
        identity = await credential_store.create(email="u2@example.com", password_hash=hasher.hash("a-password"))
        rotation = CredentialRotation(credential_store, token_store)

        updated = await rotation.apply(identity.id, hasher.hash("b-password"))
        assert updated.credential_version == 2

    @pytest.mark.asyncio
    async def test_apply_keeps_reset_requested_after_redemption(self, accounts, reset_manager, rotation):
        identity = await _register(accounts, email="u3@example.com")
        first = await reset_manager.request(identity.id)

        redemption = await reset_manager.redeem(first.token, "password-2")
        second = await reset_manager.request(identity.id)
        await rotation.apply(redemption.identity_ref, redemption.digest, redemption.token_digest)

        later = await reset_manager.redeem(second.token, "password-3")
        assert later.identity_ref == identity.id
