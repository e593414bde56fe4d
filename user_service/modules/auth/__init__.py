"""
Authentication Module - Black Box Interface

Purpose: Issue and verify session tokens, hash passwords, gate requests
Interface: TokenCodec.issue()/verify(), PasswordHasher.hash()/matches(), AuthGate
Hidden: Token format, signing keys, hash algorithm

The wiring lives in auth.factory and is imported from there.
"""

from .gate import AuthenticatedIdentity, AuthGate, AuthResult, GateState
from .passwords import PasswordHasher
from .tokens import KeyRing, SessionClaims, TokenCodec

__all__ = [
    "AuthenticatedIdentity",
    "AuthGate",
    "AuthResult",
    "GateState",
    "KeyRing",
    "PasswordHasher",
    "SessionClaims",
    "TokenCodec",
]
