"""Transactional email: verification and password-reset messages sent through the Resend HTTP API."""

from __future__ import annotations

import html
import json
import logging
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlencode

import httpx

if TYPE_CHECKING:
    from api_users.core.config import Settings

logger = logging.getLogger(__name__)

VERIFY_EMAIL_SUBJECT = "Verify your email address"
RESET_PASSWORD_SUBJECT = "Reset your password"


class EmailNotConfiguredError(Exception):
    """Raised when an email is sent but RESEND_API_KEY or EMAIL_FROM is missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EmailDeliveryError(Exception):
    """Raised when the Resend API rejects a message or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotificationGateway(Protocol):
    """Contract for sending one HTML email."""

    async def send(self, to_email: str, subject: str, html_body: str) -> None: ...


def build_link(base_url: str, token: str) -> str:
    """Append the token as a query parameter, keeping any query string already on base_url."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


def build_verification_email(link: str) -> str:
    safe = html.escape(link, quote=True)
    return (
        "<p>Welcome! Please confirm your email address to activate your account.</p>"
        f'<p><a href="{safe}">Verify email</a></p>'
        f"<p>If the button does not work, open this link: {safe}</p>"
    )


def build_reset_password_email(link: str, expires_minutes: int | None) -> str:
    safe = html.escape(link, quote=True)
    validity = (
        f"<p>This link expires in {expires_minutes} minutes.</p>" if expires_minutes else ""
    )
    return (
        "<p>We received a request to reset your password.</p>"
        f'<p><a href="{safe}">Reset password</a></p>'
        f"{validity}"
        "<p>If you did not request this, you can ignore this email.</p>"
    )


def is_email_configured(settings: Settings) -> bool:
    if settings.RESEND_API_KEY is None:
        return False
    if not settings.RESEND_API_KEY.get_secret_value().strip():
        return False
    if not settings.EMAIL_FROM or not settings.EMAIL_FROM.strip():
        return False
    return True


def _get_api_key(settings: Settings) -> str:
    if settings.RESEND_API_KEY is None:
        raise EmailNotConfiguredError("RESEND_API_KEY is not set.")
    return settings.RESEND_API_KEY.get_secret_value()


class ResendEmailGateway:
    """NotificationGateway backed by POST {RESEND_BASE_URL}/emails."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def send(self, to_email: str, subject: str, html_body: str) -> None:
        """Send one email. Raises EmailNotConfiguredError or EmailDeliveryError on failure."""
        settings = self._settings
        if not is_email_configured(settings):
            raise EmailNotConfiguredError(
                "Email is not configured; set RESEND_API_KEY and EMAIL_FROM."
            )
        url = f"{settings.RESEND_BASE_URL.rstrip('/')}/emails"
        headers = {"Authorization": f"Bearer {_get_api_key(settings)}"}
        payload = {
            "from": settings.EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_body,
        }
        timeout = max(1.0, min(60.0, settings.EMAIL_REQUEST_TIMEOUT_SEC))

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(url, json=payload, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise EmailDeliveryError("Email API timed out.") from e
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email API unreachable: {e}") from e

        if resp.status_code in (401, 403):
            raise EmailDeliveryError(
                "Email API authentication failed (invalid RESEND_API_KEY).", resp.status_code
            )
        if resp.status_code >= 400:
            try:
                body = resp.json()
                detail = body.get("message") or json.dumps(body)[:500]
            except Exception:
                detail = resp.text[:500] if resp.text else "Unknown error"
            raise EmailDeliveryError(
                f"Email API returned {resp.status_code}: {detail}", resp.status_code
            )
        try:
            message_id = resp.json().get("id")
        except Exception:
            message_id = None
        logger.info("Email sent", extra={"email_subject": subject, "message_id": message_id})
