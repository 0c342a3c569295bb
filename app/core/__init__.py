"""Auth core: settings, database session, error taxonomy, hashing and tokens."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.errors import AuthError
from app.core.security import PasswordHasher, TokenIssuer

__all__ = ["AuthError", "PasswordHasher", "TokenIssuer", "get_db", "get_settings", "settings"]
