"""SQLAlchemy model for side effects still owed to a recipient."""

from sqlalchemy import BigInteger, Column, Integer, String, UniqueConstraint

from activityhub.infrastructure.database import Base


class PendingSideEffectModel(Base):
    """A side effect queued with the feed write that triggered it.

    Rows are removed once the effect was delivered, suppressed or skipped;
    failed deliveries stay queued in their bucket for the next cycle.
    """

    __tablename__ = "pending_side_effect"
    __table_args__ = (
        UniqueConstraint(
            "activity_id", "recipient_id", "effect_type", name="uq_pending_side_effect"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    bucket = Column(Integer, nullable=False, index=True)
    recipient_id = Column(Integer, nullable=False)
    activity_id = Column(String(64), nullable=False)
    feed_entry_id = Column(Integer, nullable=False)
    effect_type = Column(String(40), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(BigInteger, nullable=False)


__all__ = ["PendingSideEffectModel"]
