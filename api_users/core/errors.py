"""Typed auth errors raised by the core and mapped to HTTP statuses in main.py."""


class AuthError(Exception):
    """Base for caller-visible auth failures. Subclasses fix the HTTP status."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class Conflict(AuthError):
    """Raised when registering an email that already has an account."""

    status_code = 409


class NotFound(AuthError):
    status_code = 404


class NotRegistered(AuthError):
    """Raised when the account exists but never completed registration (no password)."""

    status_code = 404


class InvalidCredentials(AuthError):
    status_code = 401


class EmailNotVerified(AuthError):
    status_code = 401


class TokenInvalid(AuthError):
    """Raised on bad signature, wrong token class, or malformed token."""

    status_code = 401


class TokenExpired(AuthError):
    status_code = 401


class Unauthorized(AuthError):
    """Raised by access control when the bearer token is missing or unusable."""

    status_code = 401


class Forbidden(AuthError):
    status_code = 403
