"""SQLAlchemy model for follower relationships between users."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func

from activityhub.infrastructure.database import Base


class FollowModel(Base):
    """``follower_id`` receives the public activity of ``followed_id``."""

    __tablename__ = "follow"
    __table_args__ = (UniqueConstraint("follower_id", "followed_id", name="uq_follow"),)

    id = Column(Integer, primary_key=True, index=True)
    follower_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    followed_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, nullable=False, server_default=func.now())


__all__ = ["FollowModel"]
