"""SQLAlchemy models for routed activities waiting to be collected."""

from sqlalchemy import BigInteger, Column, DateTime, Integer, JSON, String, func

from activityhub.infrastructure.database import Base


class PendingActivityModel(Base):
    """A routed seed queued in a processing bucket for one recipient stream."""

    __tablename__ = "pending_activity"

    id = Column(Integer, primary_key=True, index=True)
    entry_key = Column(String(64), nullable=False, unique=True)
    bucket = Column(Integer, nullable=False, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    stream = Column(String(20), nullable=False)
    published = Column(BigInteger, nullable=False)
    seed = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class BucketLeaseModel(Base):
    """Ownership lease a collector takes on a bucket while draining it."""

    __tablename__ = "bucket_lease"

    bucket = Column(Integer, primary_key=True, autoincrement=False)
    owner = Column(String(64), nullable=True)
    expires_at = Column(BigInteger, nullable=True)


__all__ = ["BucketLeaseModel", "PendingActivityModel"]
