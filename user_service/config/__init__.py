"""
Config Module - Black Box Interface

Purpose: Typed configuration for every other module
Interface: ConfigProvider protocol, EnvConfigProvider
Hidden: Environment parsing, defaults, validation

Can be replaced with different config sources (Consul KV, Vault, files).
"""

from .provider import (
    APIConfig,
    ConfigProvider,
    EmailConfig,
    EnvConfigProvider,
    HasherConfig,
    RedisConfig,
    ResetConfig,
    TokenConfig,
)

__all__ = [
    "APIConfig",
    "ConfigProvider",
    "EmailConfig",
    "EnvConfigProvider",
    "HasherConfig",
    "RedisConfig",
    "ResetConfig",
    "TokenConfig",
]
