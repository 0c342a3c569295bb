"""ORM model for refresh tokens (one row per active session grant)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from app.models.base import Base


class RefreshToken(Base):
    """
    Opaque refresh token owned by a user. Single-use: refreshing consumes it.

    Several rows per user are allowed (one per device/session). Rows go away
    with their user via ON DELETE CASCADE.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(255), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
