"""
Users Module - Black Box Interface

Purpose: Identity records, profiles and addresses
Interface: RedisCredentialStore, AddressModule
Hidden: Storage layout, email uniqueness index

AccountService (users.service) orchestrates these with the auth and
recovery modules and is imported from its own module.
"""

from .addresses import AddressModule
from .models import Address, Identity, IdentityStatus
from .store import RedisCredentialStore

__all__ = [
    "Address",
    "AddressModule",
    "Identity",
    "IdentityStatus",
    "RedisCredentialStore",
]
