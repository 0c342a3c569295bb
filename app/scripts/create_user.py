"""
Create a pre-verified user (e.g. an admin on a fresh install). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password "Team Admin" admin
"""
import argparse
import sys

from app.core.config import settings
from app.core.database import SessionLocal, init_db, is_sqlite_url
from app.core.errors import DuplicateEmailError
from app.core.security import (
    PASSWORD_MAX_BYTES,
    PASSWORD_MIN_LEN,
    PasswordHasher,
    is_valid_email,
    password_problem,
)
from app.schemas.auth import ROLES
from app.stores.sql import SqlUserStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an Inboxdesk user (skips email verification).")
    parser.add_argument("email", help="Login email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN} chars to {PASSWORD_MAX_BYTES} bytes)")
    parser.add_argument("name", help="Display name")
    parser.add_argument("role", nargs="?", default="viewer", choices=list(ROLES))
    args = parser.parse_args(argv)

    email = args.email.strip()
    name = args.name.strip()
    if not is_valid_email(email):
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not name:
        print("Name must not be empty.", file=sys.stderr)
        return 1
    problem = password_problem(args.password)
    if problem:
        print(f"{problem}.", file=sys.stderr)
        return 1

    if is_sqlite_url(settings.DATABASE_URL):
        init_db()
    db = SessionLocal()
    try:
        store = SqlUserStore(db)
        try:
            store.create_user(
                email=email,
                password_hash=PasswordHasher().hash(args.password),
                name=name,
                role=args.role,
                email_verified=True,
            )
        except DuplicateEmailError:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
