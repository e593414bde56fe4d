"""
Recovery Module - Black Box Interface

Purpose: Password reset by emailed one-time token
Interface: ResetTokenManager.request(), ResetTokenManager.redeem(), CredentialRotation.apply()
Hidden: Token generation, storage layout, single-use enforcement

The store can be replaced with any backend offering an atomic
unconsumed -> consumed transition.
"""

from .manager import ResetTokenManager
from .models import Redemption, ResetIssue, ResetTokenRecord
from .rotation import CredentialRotation
from .store import RedisResetTokenStore

__all__ = [
    "CredentialRotation",
    "RedisResetTokenStore",
    "Redemption",
    "ResetIssue",
    "ResetTokenManager",
    "ResetTokenRecord",
]
