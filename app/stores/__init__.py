"""User, refresh-token and verification-token persistence."""

from app.stores.base import UserStore
from app.stores.memory import InMemoryUserStore
from app.stores.sql import SqlUserStore

__all__ = ["InMemoryUserStore", "SqlUserStore", "UserStore"]
