"""JWT issuance and verification for the three token classes: access, email verification, password reset."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

import jwt

from api_users.core.errors import TokenExpired, TokenInvalid

if TYPE_CHECKING:
    from api_users.core.config import Settings

# Claims each class must carry besides iat/typ (checked after signature validation).
REQUIRED_CLAIMS: dict[str, tuple[str, ...]] = {
    "access": ("id", "role", "email"),
    "verification": ("email",),
    "reset": ("email",),
}


class TokenClass(str, Enum):
    """Token classes; each is signed with its own secret."""

    ACCESS = "access"
    VERIFICATION = "verification"
    RESET = "reset"


@dataclass(frozen=True)
class TokenPolicy:
    """Secret and lifetime for one token class. lifetime=None means no exp claim."""

    secret: str
    lifetime: timedelta | None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenIssuer:
    """
    Signs and verifies JWTs per token class.

    Every token carries iat and typ (the class name); exp is added when the class has a lifetime.
    Verification checks the class's secret and typ, so a token of one class never validates as another.
    """

    def __init__(
        self,
        policies: dict[TokenClass, TokenPolicy],
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        missing = [tc.value for tc in TokenClass if tc not in policies]
        if missing:
            raise ValueError(f"Missing token policy for: {', '.join(missing)}")
        for tc, policy in policies.items():
            if not policy.secret:
                raise ValueError(f"Token class '{tc.value}' requires a non-empty secret")
        self._policies = policies
        self._algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> TokenIssuer:
        verify_lifetime = (
            timedelta(minutes=settings.JWT_VERIFY_EXPIRE_MINUTES)
            if settings.JWT_VERIFY_EXPIRE_MINUTES
            else None
        )
        policies = {
            TokenClass.ACCESS: TokenPolicy(
                secret=settings.JWT_SECRET.get_secret_value(),
                lifetime=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
            ),
            TokenClass.VERIFICATION: TokenPolicy(
                secret=settings.JWT_VERIFY_SECRET.get_secret_value(),
                lifetime=verify_lifetime,
            ),
            TokenClass.RESET: TokenPolicy(
                secret=settings.JWT_RESET_SECRET.get_secret_value(),
                lifetime=timedelta(minutes=settings.JWT_RESET_EXPIRE_MINUTES),
            ),
        }
        return cls(policies, algorithm=settings.JWT_ALGORITHM, clock=clock)

    def lifetime(self, token_class: TokenClass) -> timedelta | None:
        return self._policies[token_class].lifetime

    def sign(self, payload: dict[str, Any], token_class: TokenClass) -> str:
        """Create a token of the given class from payload (iat, typ and exp are set here)."""
        policy = self._policies[token_class]
        now = self._clock()
        claims: dict[str, Any] = {
            **payload,
            "typ": token_class.value,
            "iat": now,
        }
        if policy.lifetime is not None:
            claims["exp"] = now + policy.lifetime
        return jwt.encode(claims, policy.secret, algorithm=self._algorithm)

    def verify(self, token: str, token_class: TokenClass) -> dict[str, Any]:
        """
        Decode and validate a token of the given class; return its payload.
        Raises TokenExpired on a lapsed exp and TokenInvalid on anything else.
        """
        policy = self._policies[token_class]
        required = ["iat", "typ"]
        if policy.lifetime is not None:
            required.append("exp")
        try:
            payload = jwt.decode(
                token,
                policy.secret,
                algorithms=[self._algorithm],
                options={"require": required},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired("Token has expired") from e
        except jwt.PyJWTError as e:
            raise TokenInvalid("Invalid token") from e

        if payload.get("typ") != token_class.value:
            raise TokenInvalid("Invalid token")
        for claim in REQUIRED_CLAIMS[token_class.value]:
            if not payload.get(claim):
                raise TokenInvalid("Invalid token payload")
        return payload
