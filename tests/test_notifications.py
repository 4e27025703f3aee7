"""Unit tests for api_users.services.notifications: email bodies, links and the Resend gateway."""

import asyncio
import json
import unittest

import httpx
from pydantic import SecretStr

from api_users.core.config import Settings
from api_users.services.notifications import (
    EmailDeliveryError,
    EmailNotConfiguredError,
    ResendEmailGateway,
    build_link,
    build_reset_password_email,
    build_verification_email,
    is_email_configured,
)


def _settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "RESEND_API_KEY": SecretStr("re_test_key"),
        "EMAIL_FROM": "Users API <no-reply@example.com>",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


class TestBuildLink(unittest.TestCase):
    def test_appends_token(self) -> None:
        self.assertEqual(
            build_link("https://app.example.com/verify", "a.b.c"),
            "https://app.example.com/verify?token=a.b.c",
        )

    def test_keeps_existing_query(self) -> None:
        self.assertEqual(
            build_link("https://app.example.com/reset?lang=en", "a.b.c"),
            "https://app.example.com/reset?lang=en&token=a.b.c",
        )


class TestTemplates(unittest.TestCase):
    def test_verification_email_contains_link(self) -> None:
        body = build_verification_email("https://x.test/verify?token=abc")
        self.assertIn('href="https://x.test/verify?token=abc"', body)

    def test_link_is_escaped(self) -> None:
        body = build_verification_email('https://x.test/?a=1&token="><script>')
        self.assertNotIn("<script>", body)
        self.assertIn("&amp;token=", body)

    def test_reset_email_mentions_expiry(self) -> None:
        self.assertIn("15 minutes", build_reset_password_email("https://x.test/r?token=t", 15))
        self.assertNotIn("expires", build_reset_password_email("https://x.test/r?token=t", None))


class TestIsEmailConfigured(unittest.TestCase):
    def test_missing_key(self) -> None:
        self.assertFalse(is_email_configured(_settings(RESEND_API_KEY=None)))

    def test_blank_key(self) -> None:
        self.assertFalse(is_email_configured(_settings(RESEND_API_KEY=SecretStr(" "))))

    def test_missing_sender(self) -> None:
        self.assertFalse(is_email_configured(_settings(EMAIL_FROM=None)))

    def test_configured(self) -> None:
        self.assertTrue(is_email_configured(_settings()))


class TestResendEmailGateway(unittest.TestCase):
    def _gateway(self, handler, **overrides: object) -> ResendEmailGateway:
        return ResendEmailGateway(_settings(**overrides), transport=httpx.MockTransport(handler))

    def test_not_configured(self) -> None:
        gateway = ResendEmailGateway(_settings(RESEND_API_KEY=None))
        with self.assertRaises(EmailNotConfiguredError) as ctx:
            asyncio.run(gateway.send("a@x.com", "Hi", "<p>Hi</p>"))
        self.assertIn("not configured", ctx.exception.message)

    def test_sends_message(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"id": "msg_123"})

        asyncio.run(self._gateway(handler).send("a@x.com", "Verify", "<p>link</p>"))

        self.assertEqual(len(captured), 1)
        request = captured[0]
        self.assertEqual(str(request.url), "https://api.resend.com/emails")
        self.assertEqual(request.headers["authorization"], "Bearer re_test_key")
        body = json.loads(request.content)
        self.assertEqual(body["to"], ["a@x.com"])
        self.assertEqual(body["subject"], "Verify")
        self.assertEqual(body["html"], "<p>link</p>")
        self.assertEqual(body["from"], "Users API <no-reply@example.com>")

    def test_auth_failure(self) -> None:
        gateway = self._gateway(lambda request: httpx.Response(401, json={"message": "bad key"}))
        with self.assertRaises(EmailDeliveryError) as ctx:
            asyncio.run(gateway.send("a@x.com", "Verify", "<p>link</p>"))
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIn("authentication failed", ctx.exception.message)

    def test_validation_error_detail(self) -> None:
        gateway = self._gateway(
            lambda request: httpx.Response(422, json={"message": "Invalid `to` field"})
        )
        with self.assertRaises(EmailDeliveryError) as ctx:
            asyncio.run(gateway.send("a@x.com", "Verify", "<p>link</p>"))
        self.assertEqual(ctx.exception.status_code, 422)
        self.assertIn("Invalid `to` field", ctx.exception.message)

    def test_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(EmailDeliveryError) as ctx:
            asyncio.run(self._gateway(handler).send("a@x.com", "Verify", "<p>link</p>"))
        self.assertIn("unreachable", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
