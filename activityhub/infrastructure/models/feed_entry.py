"""SQLAlchemy model for aggregate activities placed in user feeds."""

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)

from activityhub.infrastructure.database import Base


class FeedEntryModel(Base):
    """One aggregate activity in a user's activity or notification feed."""

    __tablename__ = "feed_entry"
    __table_args__ = (
        Index("ix_feed_entry_user_feed_time", "user_id", "feed_type", "last_time", "id"),
        Index("ix_feed_entry_user_feed_key", "user_id", "feed_type", "aggregate_key"),
        UniqueConstraint(
            "user_id", "feed_type", "activity_id", name="uq_feed_entry_activity"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    feed_type = Column(String(20), nullable=False)
    activity_id = Column(String(64), nullable=False)
    activity_type = Column(String(80), nullable=False)
    verb = Column(String(40), nullable=False)
    aggregate_key = Column(String(400), nullable=False)
    actor = Column(JSON, nullable=False)
    actors = Column(JSON, nullable=False, default=list)
    object_type = Column(String(50), nullable=False)
    objects = Column(JSON, nullable=False, default=list)
    target = Column(JSON, nullable=True)
    first_time = Column(BigInteger, nullable=False)
    last_time = Column(BigInteger, nullable=False)
    collected_at = Column(BigInteger, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


__all__ = ["FeedEntryModel"]
