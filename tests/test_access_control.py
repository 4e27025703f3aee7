"""Unit tests for api_users.services.access_control: bearer authentication and role allow-lists."""

import asyncio
import unittest
from datetime import UTC, datetime, timedelta

from api_users.core.config import Settings
from api_users.core.errors import Forbidden, Unauthorized
from api_users.core.tokens import TokenClass, TokenIssuer
from api_users.schemas.auth import CurrentUser, Role
from api_users.services.access_control import AccessControl
from api_users.services.credential_store import InMemoryCredentialStore, UserRecord


class AccessControlTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings(_env_file=None)
        self.tokens = TokenIssuer.from_settings(self.settings)
        self.store = InMemoryCredentialStore()
        self.access = AccessControl(store=self.store, tokens=self.tokens, superuser_role="admin")

    def add_user(self, role: str, email: str = "a@x.com") -> CurrentUser:
        user_id = asyncio.run(
            self.store.insert(
                UserRecord(email=email, role=role, password_hash="x", email_verified=True)
            )
        )
        return CurrentUser(id=user_id, role=role, email=email)

    def check_role(self, identity: CurrentUser, allowed: list) -> CurrentUser:
        return asyncio.run(self.access.check_role(identity, allowed))


class TestAuthenticate(AccessControlTestCase):
    def test_missing_token(self) -> None:
        with self.assertRaises(Unauthorized) as ctx:
            self.access.authenticate(None)
        self.assertEqual(ctx.exception.message, "No token provided")
        self.assertEqual(ctx.exception.status_code, 401)

    def test_valid_token_yields_identity(self) -> None:
        token = self.tokens.sign({"id": "u1", "role": "guest", "email": "a@x.com"}, TokenClass.ACCESS)
        identity = self.access.authenticate(token)
        self.assertEqual(identity, CurrentUser(id="u1", role="guest", email="a@x.com"))

    def test_expired_token(self) -> None:
        old = TokenIssuer.from_settings(
            self.settings, clock=lambda: datetime.now(UTC) - timedelta(days=2)
        )
        token = old.sign({"id": "u1", "role": "guest", "email": "a@x.com"}, TokenClass.ACCESS)
        with self.assertRaises(Unauthorized) as ctx:
            self.access.authenticate(token)
        self.assertEqual(ctx.exception.message, "Token has expired")

    def test_invalid_token(self) -> None:
        with self.assertRaises(Unauthorized) as ctx:
            self.access.authenticate("garbage")
        self.assertEqual(ctx.exception.message, "Invalid token")

    def test_verification_token_is_not_an_access_token(self) -> None:
        token = self.tokens.sign({"email": "a@x.com"}, TokenClass.VERIFICATION)
        with self.assertRaises(Unauthorized) as ctx:
            self.access.authenticate(token)
        self.assertEqual(ctx.exception.message, "Invalid token")


class TestCheckRole(AccessControlTestCase):
    def test_admin_bypasses_allow_list(self) -> None:
        admin = self.add_user("admin")
        self.assertEqual(self.check_role(admin, ["guest"]).role, "admin")

    def test_guest_in_allow_list(self) -> None:
        guest = self.add_user("guest")
        self.assertEqual(self.check_role(guest, ["guest"]).id, guest.id)

    def test_guest_not_in_allow_list(self) -> None:
        guest = self.add_user("guest")
        with self.assertRaises(Forbidden) as ctx:
            self.check_role(guest, ["admin"])
        self.assertEqual(ctx.exception.status_code, 403)

    def test_role_enum_allow_list(self) -> None:
        guest = self.add_user("guest")
        self.assertEqual(self.check_role(guest, [Role.GUEST]).role, "guest")

    def test_missing_record(self) -> None:
        ghost = CurrentUser(id="missing", role="admin", email="ghost@x.com")
        with self.assertRaises(Forbidden) as ctx:
            self.check_role(ghost, ["guest"])
        self.assertEqual(ctx.exception.message, "User role not found")

    def test_record_without_role(self) -> None:
        identity = self.add_user("")
        with self.assertRaises(Forbidden) as ctx:
            self.check_role(identity, ["guest"])
        self.assertEqual(ctx.exception.message, "User role not found")

    def test_role_read_from_store_not_token(self) -> None:
        guest = self.add_user("guest")
        # Token still says guest; store now says admin.
        asyncio.run(self.store.update_fields(guest.id, role="admin"))
        self.assertEqual(self.check_role(guest, ["admin"]).role, "admin")

        # Demotion also applies immediately.
        asyncio.run(self.store.update_fields(guest.id, role="guest"))
        stale_admin = guest.model_copy(update={"role": "admin"})
        with self.assertRaises(Forbidden):
            self.check_role(stale_admin, ["admin"])


if __name__ == "__main__":
    unittest.main()
