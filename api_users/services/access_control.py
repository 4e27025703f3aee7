"""Access control: bearer-token authentication and role allow-lists for protected routes."""

from __future__ import annotations

from collections.abc import Iterable

from api_users.core.errors import Forbidden, TokenExpired, TokenInvalid, Unauthorized
from api_users.core.tokens import TokenClass, TokenIssuer
from api_users.schemas.auth import CurrentUser
from api_users.services.credential_store import CredentialStore


class AccessControl:
    """
    Two checks, run in order on protected routes:
    authenticate() validates the access token and yields the caller's identity;
    check_role() re-reads the caller's role from the store and applies the allow-list.
    """

    def __init__(
        self,
        *,
        store: CredentialStore,
        tokens: TokenIssuer,
        superuser_role: str = "admin",
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.superuser_role = superuser_role

    def authenticate(self, token: str | None) -> CurrentUser:
        """Validate a bearer access token. Raises Unauthorized when missing, expired or invalid."""
        if not token:
            raise Unauthorized("No token provided")
        try:
            payload = self.tokens.verify(token, TokenClass.ACCESS)
        except TokenExpired as e:
            raise Unauthorized("Token has expired") from e
        except TokenInvalid as e:
            raise Unauthorized("Invalid token") from e
        return CurrentUser(
            id=str(payload["id"]),
            role=str(payload["role"]),
            email=str(payload["email"]),
        )

    async def check_role(
        self, identity: CurrentUser, allowed_roles: Iterable[str]
    ) -> CurrentUser:
        """
        Allow the caller if its current role is the superuser role or in allowed_roles.
        The role comes from the store, not the token, so role changes apply without re-login.
        """
        user = await self.store.find_by_id(identity.id)
        role = user.role if user is not None else None
        if not role:
            raise Forbidden("User role not found")
        allowed = {getattr(r, "value", r) for r in allowed_roles}
        if role != self.superuser_role and role not in allowed:
            raise Forbidden("Access denied: insufficient permissions")
        return identity.model_copy(update={"role": role})
