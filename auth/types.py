"""Pydantic models for auth domain."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from core.optional import OptionalField

PASSWORD_MIN_LENGTH = 8


class User(BaseModel):
    """A registered user of the system."""

    id: UUID
    email: str
    password_hash: str = Field(..., exclude=True, repr=False)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    """Request payload for login. Deliberately unvalidated beyond types."""

    email: str
    password: str


class RegisterRequest(BaseModel):
    """Request payload for registration."""

    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)


class UserUpdate(BaseModel):
    """Partial update of the caller's own account. All fields optional."""

    email: OptionalField[EmailStr] = Field(default_factory=OptionalField.undefined)
    password: OptionalField[str] = Field(default_factory=OptionalField.undefined)

    @field_validator("password")
    @classmethod
    def password_long_enough(cls, v: OptionalField[str]) -> OptionalField[str]:
        if v.defined and len(v.value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


class TokenPair(BaseModel):
    """Tokens returned by a successful login."""

    token: str
    refresh_token: str


class UserInfo(BaseModel):
    """Public view of the authenticated user."""

    id: UUID
    email: str
