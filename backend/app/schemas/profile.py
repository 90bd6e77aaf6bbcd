"""Profile, address and auth schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator
import phonenumbers

from app.config import get_settings
from app.models.user import UserRole

settings = get_settings()


def normalize_phone(v: Optional[str]) -> Optional[str]:
    """Validate a phone number and return it in E.164 form."""
    if v is None:
        return None
    try:
        parsed = phonenumbers.parse(v, settings.DEFAULT_PHONE_REGION)
    except phonenumbers.NumberParseException as e:
        raise ValueError(f"Invalid phone number: {e}")
    if not phonenumbers.is_valid_number(parsed):
        raise ValueError("Invalid phone number")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


# Auth

class RegisterRequest(BaseModel):
    """Email/password sign-up (always creates a client)."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class LoginRequest(BaseModel):
    """Email/password login request."""

    email: EmailStr
    password: str


class OTPRequest(BaseModel):
    """Request an SMS login code."""

    phone: str = Field(..., description="Phone number to send OTP to")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class OTPVerify(BaseModel):
    """Verify an SMS login code."""

    phone: str
    code: str = Field(..., min_length=6, max_length=6)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: UUID
    role: UserRole
    display_name: str


# Profile

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    location_latitude: Optional[float] = Field(None, ge=-90, le=90)
    location_longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class ProfileResponse(BaseModel):
    id: UUID
    email: Optional[str]
    phone: Optional[str]
    phone_verified: Optional[bool]
    first_name: Optional[str]
    last_name: Optional[str]
    role: UserRole
    street: Optional[str]
    city: Optional[str]
    state: Optional[str]
    postal_code: Optional[str]
    location_latitude: Optional[float]
    location_longitude: Optional[float]
    created_at: datetime

    class Config:
        from_attributes = True


# Addresses

class AddressCreate(BaseModel):
    """Schema for creating a client address."""

    label: str = Field(default="Home", max_length=50)
    street: str = Field(..., max_length=255)
    unit: Optional[str] = Field(None, max_length=50)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=50)
    postal_code: str = Field(..., max_length=20)
    access_notes: Optional[str] = None
    is_default: bool = False


class AddressResponse(BaseModel):
    id: UUID
    label: Optional[str]
    street: str
    unit: Optional[str]
    city: str
    state: str
    postal_code: str
    access_notes: Optional[str]
    is_default: bool
    full_address: str
    created_at: datetime

    class Config:
        from_attributes = True
