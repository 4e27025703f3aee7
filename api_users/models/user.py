"""ORM model for application users (auth and RBAC)."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, func

from api_users.models.base import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'admin' or 'guest'
    email is indexed but not unique; uniqueness is checked at registration.
    password_hash is NULL until registration completes.
    """

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_user_id)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(320), nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default="guest")
    email_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
