"""SQLAlchemy model for delivered side effect markers."""

from sqlalchemy import BigInteger, Column, Integer, String, UniqueConstraint

from activityhub.infrastructure.database import Base


class SideEffectReceiptModel(Base):
    """Marks that ``effect_type`` fired for an activity and recipient."""

    __tablename__ = "side_effect_receipt"
    __table_args__ = (
        UniqueConstraint(
            "activity_id", "recipient_id", "effect_type", name="uq_side_effect_receipt"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    activity_id = Column(String(64), nullable=False)
    recipient_id = Column(Integer, nullable=False)
    effect_type = Column(String(40), nullable=False)
    created_at = Column(BigInteger, nullable=False, index=True)


__all__ = ["SideEffectReceiptModel"]
