"""
User service request and response models.

These models define the structure of all data passed between the HTTP
layer and clients.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _check_password_bytes(value: str) -> str:
    # bcrypt input limit
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes")
    return value


# Request Models (API Input)


class RegisterRequest(BaseModel):
    """Request to create an account."""

    email: str = Field(..., description="Login email", max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(..., description="Account password", min_length=8, max_length=72)
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)
    phone: str = Field("", max_length=32)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_bytes(v)


class LoginRequest(BaseModel):
    """Request to authenticate with email and password."""

    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=1, max_length=72)


class ForgotPasswordRequest(BaseModel):
    """Request a password reset email."""

    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)


class ResetPasswordRequest(BaseModel):
    """Redeem a reset token with a new password."""

    token: str = Field(..., description="Token from the reset email", min_length=1, max_length=512)
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_bytes(v)


class ChangePasswordRequest(BaseModel):
    """Change password while authenticated."""

    current_password: str = Field(..., min_length=1, max_length=72)
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_bytes(v)


class UpdateProfileRequest(BaseModel):
    """Partial profile update."""

    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)


class AddressRequest(BaseModel):
    """Create an address."""

    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field("", max_length=100)
    postal_code: str = Field("", max_length=20)
    country: str = Field("", max_length=100)
    is_default: bool = False


class UpdateAddressRequest(BaseModel):
    """Partial address update."""

    street: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    is_default: Optional[bool] = None


# Response Models (API Output)


class ProfileResponse(BaseModel):
    """Account profile returned to its owner."""

    id: str
    email: str
    status: str
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Session token issued after login or password change."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class AddressResponse(BaseModel):
    id: str
    street: str
    city: str
    state: str = ""
    postal_code: str = ""
    country: str = ""
    is_default: bool = False


class AddressListResponse(BaseModel):
    addresses: List[AddressResponse]
    count: int


class ForgotPasswordResponse(BaseModel):
    """Same shape whether or not the email is registered."""

    status: str = "accepted"
    message: str = "If the account exists, a reset link has been sent"
    delivered: bool = True
