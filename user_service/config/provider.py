"""Configuration provider following Black Box Design principles."""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_KEY_ID = "default"
MIN_SECRET_BYTES = 32


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class TokenConfig:
    """Session token signing configuration."""
    secrets: Dict[str, str]
    active_key_id: str
    ttl_seconds: int
    check_credential_version: bool = True

    def __post_init__(self):
        if not self.secrets:
            raise ValueError("At least one signing secret is required")
        if self.active_key_id not in self.secrets:
            raise ValueError(f"Active key id '{self.active_key_id}' has no configured secret")
        if self.ttl_seconds <= 0:
            raise ValueError("SESSION_TOKEN_TTL must be positive")


@dataclass(frozen=True)
class ResetConfig:
    """Password reset configuration."""
    ttl_seconds: int
    link_base_url: str

    def __post_init__(self):
        if self.ttl_seconds <= 0:
            raise ValueError("RESET_TOKEN_TTL must be positive")


@dataclass(frozen=True)
class HasherConfig:
    """Password hashing configuration."""
    rounds: int = 12


@dataclass(frozen=True)
class EmailConfig:
    """Email delivery configuration."""
    backend: str
    api_url: Optional[str]
    api_key: Optional[str] = field(default=None, repr=False)
    sender: str = "no-reply@localhost"
    timeout: float = 10.0

    @property
    def is_http(self) -> bool:
        return self.backend == "http"


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection configuration."""
    host: str
    port: int
    db: int
    password: Optional[str] = field(default=None, repr=False)

    @property
    def url(self) -> str:
        # Password is passed separately to avoid URL encoding issues
        return f"redis://{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_token_config(self) -> TokenConfig:
        ...

    def get_reset_config(self) -> ResetConfig:
        ...

    def get_hasher_config(self) -> HasherConfig:
        ...

    def get_email_config(self) -> EmailConfig:
        ...

    def get_redis_config(self) -> RedisConfig:
        ...

    def get_api_config(self) -> APIConfig:
        ...


def parse_secrets(value: str) -> Dict[str, str]:
    """
    Parse a signing keyring from ``kid:secret,kid:secret`` format.

    A bare entry without a key id is stored under ``default``.

    Example:
        >>> parse_secrets("2024:abc,2025:def")
        {'2024': 'abc', '2025': 'def'}
    """
    keys: Dict[str, str] = {}
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" in entry:
            kid, secret = entry.split(":", 1)
            keys[kid.strip()] = secret.strip()
        else:
            keys[DEFAULT_KEY_ID] = entry
    return keys


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_token_config(self) -> TokenConfig:
        """Get session token configuration from environment variables."""
        secrets_env = os.getenv("JWT_SECRETS") or os.getenv("JWT_SECRET")
        if not secrets_env:
            raise ValueError(
                "JWT_SECRETS (or JWT_SECRET) environment variable is required. "
                "Format: kid:secret,kid:secret. Example: 2025-01:your-generated-secret"
            )

        keys = parse_secrets(secrets_env)
        for kid, secret in keys.items():
            if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
                logger.warning(f"Signing secret '{kid}' is shorter than {MIN_SECRET_BYTES} bytes")

        return TokenConfig(
            secrets=keys,
            active_key_id=os.getenv("JWT_ACTIVE_KEY_ID") or next(iter(keys)),
            ttl_seconds=int(os.getenv("SESSION_TOKEN_TTL", "86400")),
            check_credential_version=_env_bool("SESSION_CHECK_CREDENTIAL_VERSION", "true"),
        )

    def get_reset_config(self) -> ResetConfig:
        """Get password reset configuration from environment variables."""
        return ResetConfig(
            ttl_seconds=int(os.getenv("RESET_TOKEN_TTL", "900")),
            link_base_url=os.getenv("RESET_LINK_BASE_URL", "http://localhost:8002/reset-password"),
        )

    def get_hasher_config(self) -> HasherConfig:
        return HasherConfig(rounds=int(os.getenv("BCRYPT_ROUNDS", "12")))

    def get_email_config(self) -> EmailConfig:
        """Get email delivery configuration from environment variables."""
        backend = os.getenv("EMAIL_BACKEND", "log").lower()
        api_url = os.getenv("EMAIL_API_URL")
        if backend == "http" and not api_url:
            raise ValueError("EMAIL_API_URL is required when EMAIL_BACKEND=http")

        return EmailConfig(
            backend=backend,
            api_url=api_url,
            api_key=os.getenv("EMAIL_API_KEY"),
            sender=os.getenv("EMAIL_FROM", "no-reply@localhost"),
            timeout=float(os.getenv("EMAIL_TIMEOUT", "10")),
        )

    def get_redis_config(self) -> RedisConfig:
        """Get Redis configuration from environment variables."""
        # Port might be in tcp://host:port format from K8s service links
        redis_port_env = os.getenv("REDIS_PORT", "6379")
        if redis_port_env.startswith("tcp://"):
            redis_port = int(redis_port_env.split(":")[-1])
        else:
            redis_port = int(redis_port_env)

        return RedisConfig(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=redis_port,
            db=int(os.getenv("REDIS_DB", "0")),
            password=os.getenv("REDIS_PASSWORD"),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", os.getenv("PORT", "8002"))),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=_env_bool("API_DEBUG", "false"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
