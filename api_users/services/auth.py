"""
Credential lifecycle: registration, login, email verification and password recovery.

Account states: NonExistent -> Registered (email_verified=False) -> Verified.
Registered and Verified accounts can both reset their password; only Verified accounts can log in.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from api_users.core.errors import (
    Conflict,
    EmailNotVerified,
    InvalidCredentials,
    NotFound,
    NotRegistered,
)
from api_users.core.security import PasswordHasher
from api_users.core.tokens import TokenClass, TokenIssuer
from api_users.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from api_users.services.credential_store import CredentialStore, UserRecord
from api_users.services.notifications import (
    RESET_PASSWORD_SUBJECT,
    VERIFY_EMAIL_SUBJECT,
    NotificationGateway,
    build_link,
    build_reset_password_email,
    build_verification_email,
)

if TYPE_CHECKING:
    from api_users.core.config import Settings

logger = logging.getLogger(__name__)


class AuthService:
    """
    Orchestrates the credential store, password hasher, token issuer and email gateway.

    Every failure the caller can act on is raised as an AuthError subclass and never logged here.
    Email delivery is fire-and-forget: failures are logged and do not fail the request.
    """

    def __init__(
        self,
        *,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        notifier: NotificationGateway,
        settings: Settings,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.notifier = notifier
        self.settings = settings

    async def register(self, body: RegisterRequest) -> None:
        """Create an unverified account and email a verification link. Raises Conflict on duplicate email."""
        # Check-then-insert is not atomic: concurrent registrations of one email can both succeed.
        existing = await self.store.find_by_email(body.email)
        if existing is not None:
            raise Conflict("Email already exists")

        password_hash = await self.hasher.hash(body.password)
        role = self.settings.DEFAULT_ROLE
        user_id = await self.store.insert(
            UserRecord(
                email=body.email,
                role=role,
                first_name=body.first_name,
                last_name=body.last_name,
                password_hash=password_hash,
                email_verified=False,
            )
        )
        logger.info("User registered", extra={"user_id": user_id, "role": role})

        token = self.tokens.sign({"email": body.email}, TokenClass.VERIFICATION)
        link = build_link(self.settings.VERIFY_EMAIL_URL, token)
        await self._dispatch(
            body.email,
            VERIFY_EMAIL_SUBJECT,
            build_verification_email(link),
            purpose="verification",
        )

    async def login(self, body: LoginRequest) -> TokenResponse:
        """
        Check credentials and return an access token carrying id, role and email.
        Raises NotRegistered, EmailNotVerified or InvalidCredentials.
        """
        user = await self.store.find_by_email(body.email)
        if user is None or not user.password_hash:
            raise NotRegistered("User has not been registered")
        if not user.email_verified:
            raise EmailNotVerified("User has not verified the email")
        if not await self.hasher.verify(body.password, user.password_hash):
            raise InvalidCredentials("Invalid password")

        token = self.tokens.sign(
            {"id": user.id, "role": user.role, "email": user.email},
            TokenClass.ACCESS,
        )
        return TokenResponse(access_token=token, token_type="bearer")

    async def forgot_password(self, email: str) -> None:
        """
        Email a reset link for the address. Always succeeds, whether or not an account exists,
        so the response never reveals which emails are registered.
        """
        token = self.tokens.sign({"email": email}, TokenClass.RESET)
        link = build_link(self.settings.RESET_PASSWORD_URL, token)
        lifetime = self.tokens.lifetime(TokenClass.RESET)
        expires_minutes = int(lifetime.total_seconds() // 60) if lifetime else None
        await self._dispatch(
            email,
            RESET_PASSWORD_SUBJECT,
            build_reset_password_email(link, expires_minutes),
            purpose="password_reset",
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Set a new password for the account named by a reset token.
        Raises TokenExpired/TokenInvalid, NotFound or NotRegistered. Does not log the user in.
        """
        payload = self.tokens.verify(token, TokenClass.RESET)
        user = await self.store.find_by_email(payload["email"])
        if user is None or user.id is None:
            raise NotFound("User not found")
        if not user.password_hash:
            raise NotRegistered("User has not been registered")

        password_hash = await self.hasher.hash(new_password)
        await self.store.update_fields(user.id, password_hash=password_hash)

    async def verify_email(self, token: str) -> None:
        """Mark the account named by a verification token as verified. Idempotent."""
        payload = self.tokens.verify(token, TokenClass.VERIFICATION)
        user = await self.store.find_by_email(payload["email"])
        if user is None or user.id is None:
            raise NotFound("User not found")
        await self.store.update_fields(user.id, email_verified=True)

    async def _dispatch(self, to_email: str, subject: str, html_body: str, purpose: str) -> None:
        try:
            await self.notifier.send(to_email, subject, html_body)
        except Exception:
            logger.exception("Email dispatch failed", extra={"email_purpose": purpose})
