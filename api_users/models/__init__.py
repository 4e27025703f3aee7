"""SQLAlchemy ORM models."""

from api_users.models.base import Base
from api_users.models.user import User

__all__ = ["Base", "User"]
