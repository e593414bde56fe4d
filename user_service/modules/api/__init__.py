"""
API Module - Black Box Interface

Purpose: HTTP request/response contracts
Interface: Pydantic models used by the routes in user_service.main
Hidden: Field validation rules

The API layer only orchestrates - it contains no business logic.
All logic is delegated to the account service and auth gate.
"""

from .models import (
    AddressListResponse,
    AddressRequest,
    AddressResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdateAddressRequest,
    UpdateProfileRequest,
)

__all__ = [
    "AddressListResponse",
    "AddressRequest",
    "AddressResponse",
    "ChangePasswordRequest",
    "ForgotPasswordRequest",
    "ForgotPasswordResponse",
    "LoginRequest",
    "ProfileResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenResponse",
    "UpdateAddressRequest",
    "UpdateProfileRequest",
]
