"""Core app configuration, database, security and tokens."""

from api_users.core.config import get_settings, settings
from api_users.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
