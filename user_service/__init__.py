"""
User Service - accounts, profiles and password recovery

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- auth: Session tokens, password hashing, request gate
- recovery: Password reset tokens and credential rotation
- users: Identity store, profiles, addresses
- email: Reset link delivery
- api: Request/response models
"""

__version__ = "1.0.0"
