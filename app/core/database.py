"""Database engine and session management (SQLite embedded or PostgreSQL managed)."""

from collections.abc import Generator
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def create_db_engine(url: str, echo: bool = False, **kwargs: Any) -> Engine:
    """
    Create an engine for either backend.

    SQLite connections get foreign keys enabled so refresh tokens cascade
    with their user, as they do on PostgreSQL.
    """
    if is_sqlite_url(url):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        db_engine = create_engine(url, echo=echo, connect_args=connect_args, **kwargs)

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine
    return create_engine(url, pool_pre_ping=True, echo=echo, **kwargs)


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(db_engine: Engine | None = None) -> None:
    """
    Create tables for the embedded SQLite backend (PostgreSQL uses Alembic).

    Also creates the parent directory of a file-based SQLite database.
    """
    from app.models import Base

    db_engine = db_engine or engine
    url = db_engine.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=db_engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
