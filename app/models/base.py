"""SQLAlchemy declarative Base shared by the user and token tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base; Alembic and init_db read Base.metadata."""
