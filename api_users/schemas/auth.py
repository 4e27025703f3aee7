"""Request/response schemas for auth endpoints."""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from api_users.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

# Pragmatic address check (local@domain.tld); deliverability is proven by the verification email.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Role(str, Enum):
    """Closed set of user roles. ADMIN is the superuser role by default."""

    ADMIN = "admin"
    GUEST = "guest"


def _normalize_email(v: str) -> str:
    v = v.strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Email must be a valid email address")
    return v.lower()


def _check_password_strength(v: str) -> str:
    if not re.search(r"[a-zA-Z]", v):
        raise ValueError("Password must contain letters")
    if not re.search(r"[0-9]", v):
        raise ValueError("Password must contain numbers")
    return v


class RegisterRequest(BaseModel):
    """Registration payload. Unknown keys such as role are ignored; new accounts get DEFAULT_ROLE."""

    first_name: str = Field(..., min_length=1, max_length=255, description="First name")
    last_name: str = Field(..., min_length=1, max_length=255, description="Last name")
    email: str = Field(..., max_length=320, description="Email address")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Password (letters and numbers)",
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., max_length=320, description="Email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=320, description="Account email address")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class ResetPasswordRequest(BaseModel):
    """New password for the account named by the reset token (token travels in the query string)."""

    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    confirm_password: str = Field(..., max_length=PASSWORD_MAX_LEN)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class TokenResponse(BaseModel):
    """JWT access token returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class MessageResponse(BaseModel):
    message: str


class CurrentUser(BaseModel):
    """Authenticated identity (id, role, email) attached to the request by access control."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    role: str
    email: str
