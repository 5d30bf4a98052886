"""SQLAlchemy model for per-user notification counters."""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer

from activityhub.infrastructure.database import Base


class NotificationStateModel(Base):
    """Unread notification count and last read time of a user."""

    __tablename__ = "notification_state"

    user_id = Column(
        Integer,
        ForeignKey("user.id", ondelete="CASCADE"),
        primary_key=True,
        autoincrement=False,
    )
    unread_count = Column(Integer, nullable=False, default=0)
    last_read_time = Column(BigInteger, nullable=True)


__all__ = ["NotificationStateModel"]
