"""Password hashing for registration, login and password reset."""

import bcrypt
from starlette.concurrency import run_in_threadpool

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for password validation (BSIMM / input validation).
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    if not plain_password:
        raise ValueError("Password must be non-empty")
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash.

    Returns False on mismatch. Raises ValueError when the stored hash is not a bcrypt hash.
    """
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise ValueError("Stored password hash is malformed") from e


class PasswordHasher:
    """Async facade over bcrypt; hashing runs in the threadpool to keep the event loop free."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds

    async def hash(self, plain_password: str) -> str:
        return await run_in_threadpool(hash_password, plain_password, self.rounds)

    async def verify(self, plain_password: str, hashed: str) -> bool:
        return await run_in_threadpool(verify_password, plain_password, hashed)
