"""Auth endpoints (register, login, password recovery, email verification) and access-control dependencies."""

from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from api_users.core.config import get_settings
from api_users.core.database import get_db
from api_users.core.security import PasswordHasher
from api_users.core.tokens import TokenIssuer
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
from api_users.services.access_control import AccessControl
from api_users.services.auth import AuthService
from api_users.services.credential_store import CredentialStore, SqlAlchemyCredentialStore
from api_users.services.notifications import NotificationGateway, ResendEmailGateway

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_credential_store(db: Annotated[Session, Depends(get_db)]) -> CredentialStore:
    """Dependency: credential store bound to the request's DB session."""
    return SqlAlchemyCredentialStore(db)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


def get_notifier() -> NotificationGateway:
    return ResendEmailGateway(get_settings())


def get_auth_service(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    notifier: Annotated[NotificationGateway, Depends(get_notifier)],
) -> AuthService:
    settings = get_settings()
    return AuthService(
        store=store,
        hasher=PasswordHasher(settings.BCRYPT_ROUNDS),
        tokens=tokens,
        notifier=notifier,
        settings=settings,
    )


def get_access_control(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> AccessControl:
    return AccessControl(
        store=store,
        tokens=tokens,
        superuser_role=get_settings().SUPERUSER_ROLE,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    access: Annotated[AccessControl, Depends(get_access_control)],
) -> CurrentUser:
    """Dependency: require a valid Bearer access token and return the caller's identity. Raises 401."""
    token = credentials.credentials if credentials is not None else None
    return access.authenticate(token)


def require_roles(*roles: Role | str) -> Callable[..., Awaitable[CurrentUser]]:
    """
    Dependency factory: authenticated caller whose current role is in roles.
    The superuser role always passes. Raises 403 otherwise.

    Usage: user: Annotated[CurrentUser, Depends(require_roles(Role.GUEST))]
    """

    async def _dep(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
        access: Annotated[AccessControl, Depends(get_access_control)],
    ) -> CurrentUser:
        return await access.check_role(current_user, roles)

    return _dep


@router.post("/register", response_model=MessageResponse)
async def register(
    body: RegisterRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Create an account and send a verification email. 409 if the email is taken."""
    await auth.register(body)
    return MessageResponse(message="User created successfully")


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """
    Authenticate with email and password; returns a JWT access token valid for one day.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    return await auth.login(body)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Send a password reset link. Same response whether or not the email is registered."""
    await auth.forgot_password(body.email)
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    token: Annotated[str, Query(min_length=1, description="Reset token from the email link")],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Set a new password using the reset token. 401 on expired or invalid token."""
    await auth.reset_password(token, body.password)
    return MessageResponse(message="Password has been successfully reset")


@router.api_route("/verify-email", methods=["GET", "POST"], response_model=MessageResponse)
async def verify_email(
    token: Annotated[str, Query(min_length=1, description="Verification token from the email link")],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Mark the account's email as verified. GET so the emailed link works when clicked."""
    await auth.verify_email(token)
    return MessageResponse(message="Email has been successfully verified")


@router.get("/me", response_model=CurrentUser)
async def me(
    current_user: Annotated[CurrentUser, Depends(require_roles(Role.GUEST))],
) -> CurrentUser:
    """Return the caller's identity with its current role (guest or admin)."""
    return current_user
