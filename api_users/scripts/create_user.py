"""
Create a pre-verified user (e.g. first admin) without the email round-trip. Run from project root:
  python -m api_users.scripts.create_user EMAIL PASSWORD [role] [--first-name NAME] [--last-name NAME]
Example:
  python -m api_users.scripts.create_user admin@example.com your-secure-passw0rd admin
"""
import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from api_users.core.config import get_settings
from api_users.core.database import new_session
from api_users.core.security import PasswordHasher
from api_users.schemas.auth import RegisterRequest, Role
from api_users.services.credential_store import (
    CredentialStore,
    SqlAlchemyCredentialStore,
    UserRecord,
)

logger = logging.getLogger(__name__)


async def create_user(
    store: CredentialStore,
    hasher: PasswordHasher,
    body: RegisterRequest,
    role: Role,
) -> str | None:
    """Insert a verified account with the given role; returns its id, or None if the email is taken."""
    if await store.find_by_email(body.email) is not None:
        return None
    password_hash = await hasher.hash(body.password)
    return await store.insert(
        UserRecord(
            email=body.email,
            role=role.value,
            first_name=body.first_name,
            last_name=body.last_name,
            password_hash=password_hash,
            email_verified=True,
        )
    )


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    parser = argparse.ArgumentParser(description="Create a verified user (no email round-trip).")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (8-128 chars, letters and numbers)")
    parser.add_argument(
        "role", nargs="?", default=settings.DEFAULT_ROLE, choices=[r.value for r in Role]
    )
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    args = parser.parse_args()

    try:
        body = RegisterRequest(
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email,
            password=args.password,
        )
    except ValidationError as e:
        for err in e.errors():
            print(f"Invalid {'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1

    db = new_session()
    try:
        store = SqlAlchemyCredentialStore(db)
        user_id = asyncio.run(
            create_user(store, PasswordHasher(settings.BCRYPT_ROUNDS), body, Role(args.role))
        )
        if user_id is None:
            print(f"User '{body.email}' already exists.", file=sys.stderr)
            return 1
        logger.info("Created user", extra={"user_id": user_id, "role": args.role})
        print(f"Created user '{body.email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
