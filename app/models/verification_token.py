"""ORM model for pending self-registrations awaiting email verification."""

from sqlalchemy import Column, DateTime, Integer, String, func

from app.models.base import Base


class VerificationToken(Base):
    """
    Pending registration payload keyed by a single-use token.

    At most one row per email: a new registration replaces the previous one.
    The password is already hashed; the plaintext is never stored.
    """

    __tablename__ = "email_verification_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, index=True)
    token = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
