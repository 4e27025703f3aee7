"""Unit tests for api_users.core.security: bcrypt hashing and verification."""

import asyncio
import unittest

from api_users.core.security import PasswordHasher, hash_password, verify_password

# Minimum bcrypt cost keeps the suite fast.
ROUNDS = 4


class TestHashPassword(unittest.TestCase):
    """hash_password produces salted bcrypt hashes and rejects empty input."""

    def test_round_trip(self) -> None:
        hashed = hash_password("Pw123456", rounds=ROUNDS)
        self.assertTrue(hashed.startswith("$2"))
        self.assertTrue(verify_password("Pw123456", hashed))

    def test_salted_output_differs(self) -> None:
        self.assertNotEqual(
            hash_password("Pw123456", rounds=ROUNDS),
            hash_password("Pw123456", rounds=ROUNDS),
        )

    def test_plaintext_not_in_hash(self) -> None:
        self.assertNotIn("Pw123456", hash_password("Pw123456", rounds=ROUNDS))

    def test_empty_password_raises(self) -> None:
        with self.assertRaises(ValueError):
            hash_password("", rounds=ROUNDS)


class TestVerifyPassword(unittest.TestCase):
    """verify_password returns False on mismatch and raises only on a malformed hash."""

    def test_wrong_password(self) -> None:
        hashed = hash_password("Pw123456", rounds=ROUNDS)
        self.assertFalse(verify_password("Pw1234567", hashed))
        self.assertFalse(verify_password("", hashed))

    def test_malformed_hash_raises(self) -> None:
        with self.assertRaises(ValueError):
            verify_password("Pw123456", "not-a-bcrypt-hash")


class TestPasswordHasher(unittest.TestCase):
    """PasswordHasher exposes the same behavior as coroutines."""

    def test_async_round_trip(self) -> None:
        hasher = PasswordHasher(rounds=ROUNDS)

        async def run() -> tuple[bool, bool]:
            hashed = await hasher.hash("Pw123456")
            return await hasher.verify("Pw123456", hashed), await hasher.verify("Other123", hashed)

        ok, wrong = asyncio.run(run())
        self.assertTrue(ok)
        self.assertFalse(wrong)

    def test_async_empty_raises(self) -> None:
        with self.assertRaises(ValueError):
            asyncio.run(PasswordHasher(rounds=ROUNDS).hash(""))


if __name__ == "__main__":
    unittest.main()
