"""
Credential store: the persistence collaborator behind AuthService and access control.

CredentialStore is the async contract; SqlAlchemyCredentialStore backs it with the users table,
InMemoryCredentialStore backs it with dicts (tests, local runs without Postgres).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from api_users.core.errors import NotFound
from api_users.models.user import User

# Fields callers may change through update_fields (id and created_at are store-owned).
UPDATABLE_FIELDS = frozenset(
    {"first_name", "last_name", "email", "password_hash", "role", "email_verified"}
)


@dataclass
class UserRecord:
    """Store-side view of a user. password_hash never leaves the service layer."""

    email: str
    role: str
    first_name: str = ""
    last_name: str = ""
    password_hash: str | None = None
    email_verified: bool = False
    id: str | None = None
    created_at: datetime | None = field(default=None, compare=False)


class CredentialStore(Protocol):
    """Contract for user lookup and credential persistence."""

    async def find_by_email(self, email: str) -> UserRecord | None: ...

    async def find_by_id(self, user_id: str) -> UserRecord | None: ...

    async def insert(self, record: UserRecord) -> str: ...

    async def update_fields(self, user_id: str, **fields: Any) -> None: ...


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        password_hash=user.password_hash,
        email_verified=bool(user.email_verified),
        created_at=user.created_at,
    )


class SqlAlchemyCredentialStore:
    """
    CredentialStore over the users table.

    The session is synchronous; each call runs in the threadpool so request handlers stay async.
    Calls within one request are sequential, so the session is never used concurrently.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def _find_by_email(self, email: str) -> UserRecord | None:
        user = (
            self._db.query(User)
            .filter(User.email == email)
            .order_by(User.created_at)
            .first()
        )
        return _to_record(user) if user is not None else None

    def _find_by_id(self, user_id: str) -> UserRecord | None:
        user = self._db.get(User, user_id)
        return _to_record(user) if user is not None else None

    def _insert(self, record: UserRecord) -> str:
        user = User(
            id=record.id or uuid.uuid4().hex,
            email=record.email,
            role=record.role,
            first_name=record.first_name,
            last_name=record.last_name,
            password_hash=record.password_hash,
            email_verified=record.email_verified,
        )
        self._db.add(user)
        self._db.commit()
        return user.id

    def _update_fields(self, user_id: str, fields: dict[str, Any]) -> None:
        _check_fields(fields)
        updated = (
            self._db.query(User)
            .filter(User.id == user_id)
            .update(fields, synchronize_session=False)
        )
        if not updated:
            self._db.rollback()
            raise NotFound("User not found")
        self._db.commit()

    async def find_by_email(self, email: str) -> UserRecord | None:
        return await run_in_threadpool(self._find_by_email, email)

    async def find_by_id(self, user_id: str) -> UserRecord | None:
        return await run_in_threadpool(self._find_by_id, user_id)

    async def insert(self, record: UserRecord) -> str:
        return await run_in_threadpool(self._insert, record)

    async def update_fields(self, user_id: str, **fields: Any) -> None:
        await run_in_threadpool(self._update_fields, user_id, fields)


class InMemoryCredentialStore:
    """Dict-backed CredentialStore. Keys by id; email lookups scan in insertion order."""

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}

    async def find_by_email(self, email: str) -> UserRecord | None:
        for record in self._users.values():
            if record.email == email:
                return replace(record)
        return None

    async def find_by_id(self, user_id: str) -> UserRecord | None:
        record = self._users.get(user_id)
        return replace(record) if record is not None else None

    async def insert(self, record: UserRecord) -> str:
        user_id = record.id or uuid.uuid4().hex
        self._users[user_id] = replace(
            record, id=user_id, created_at=record.created_at or datetime.now(UTC)
        )
        return user_id

    async def update_fields(self, user_id: str, **fields: Any) -> None:
        _check_fields(fields)
        record = self._users.get(user_id)
        if record is None:
            raise NotFound("User not found")
        self._users[user_id] = replace(record, **fields)
