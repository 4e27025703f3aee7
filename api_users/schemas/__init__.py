"""Pydantic request/response schemas."""

from api_users.schemas.auth import (
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    Role,
    TokenResponse,
)
from api_users.schemas.health import HealthResponse

__all__ = [
    "CurrentUser",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "Role",
    "TokenResponse",
]
