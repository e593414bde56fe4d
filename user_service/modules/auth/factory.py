"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the authentication and recovery stack from configuration
- Wires dependencies together
- Returns only the gate and the account facade
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ...config.provider import ConfigProvider
from ..email.sender import HttpEmailSender, LoggingEmailSender
from ..recovery.manager import ResetTokenManager
from ..recovery.rotation import CredentialRotation
from ..recovery.store import RedisResetTokenStore
from ..users.addresses import AddressModule
from ..users.service import AccountService
from ..users.store import RedisCredentialStore
from .audit import AuditLog
from .gate import AuthGate
from .passwords import PasswordHasher
from .tokens import Clock, KeyRing, TokenCodec, utc_now

logger = logging.getLogger(__name__)


@dataclass
class AuthStack:
    """Public surface of the wired stack."""
    gate: AuthGate
    accounts: AccountService


class AuthFactory:
    """
    Factory for building the authentication stack.

    This is the composition root that:
    - Creates all auth and recovery components
    - Wires them together via dependency injection
    - Returns only the public interface
    """

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        redis_client: Any,
        email_sender: Optional[Any] = None,
        clock: Clock = utc_now,
    ) -> AuthStack:
        """
        Build the complete authentication stack.

        Args:
            config_provider: Configuration provider
            redis_client: Async Redis client shared by all stores
            email_sender: Override the configured email sender (tests, custom providers)
            clock: Time source for token issuance and expiry

        Returns:
            AuthStack with the auth gate and account service
        """
        token_config = config_provider.get_token_config()
        reset_config = config_provider.get_reset_config()
        hasher_config = config_provider.get_hasher_config()

        keyring = KeyRing(token_config.secrets, token_config.active_key_id)
        codec = TokenCodec(keyring, default_ttl=token_config.ttl_seconds, clock=clock)
        hasher = PasswordHasher(rounds=hasher_config.rounds)
        audit = AuditLog(redis_client)

        credential_store = RedisCredentialStore(redis_client)
        token_store = RedisResetTokenStore(redis_client, clock=clock)

        if email_sender is None:
            email_sender = AuthFactory.build_email_sender(config_provider, reset_config.ttl_seconds)

        reset_manager = ResetTokenManager(
            credential_store=credential_store,
            token_store=token_store,
            email_sender=email_sender,
            hasher=hasher,
            ttl_seconds=reset_config.ttl_seconds,
            link_base_url=reset_config.link_base_url,
            audit=audit,
            clock=clock,
        )
        rotation = CredentialRotation(credential_store, token_store, audit=audit)

        accounts = AccountService(
            credential_store=credential_store,
            hasher=hasher,
            codec=codec,
            reset_manager=reset_manager,
            rotation=rotation,
            addresses=AddressModule(redis_client),
            audit=audit,
        )
        gate = AuthGate(
            codec,
            credential_store=credential_store,
            check_credential_version=token_config.check_credential_version,
        )

        logger.info(
            f"Authentication stack built (signing key '{keyring.active_key_id}', "
            f"version check {'on' if gate.check_credential_version else 'off'})"
        )
        return AuthStack(gate=gate, accounts=accounts)

    @staticmethod
    def build_email_sender(config_provider: ConfigProvider, reset_ttl_seconds: int):
        email_config = config_provider.get_email_config()
        if email_config.is_http:
            logger.info("Using HTTP email sender")
            return HttpEmailSender(
                api_url=email_config.api_url,
                api_key=email_config.api_key,
                sender=email_config.sender,
                timeout=email_config.timeout,
                ttl_minutes=reset_ttl_seconds // 60,
            )

        logger.warning("Using logging email sender - reset emails are not delivered")
        return LoggingEmailSender()
