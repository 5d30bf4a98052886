"""SQLAlchemy model linking users to content and discussion resources."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from activityhub.infrastructure.database import Base

ROLE_MANAGER = "manager"
ROLE_MEMBER = "member"


class ResourceMembershipModel(Base):
    """A user's role on a resource such as a content item or discussion."""

    __tablename__ = "resource_membership"
    __table_args__ = (
        UniqueConstraint("resource_type", "resource_id", "user_id", name="uq_resource_member"),
    )

    id = Column(Integer, primary_key=True, index=True)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(120), nullable=False, index=True)
    user_id = Column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(20), nullable=False, default=ROLE_MEMBER)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


__all__ = ["ResourceMembershipModel", "ROLE_MANAGER", "ROLE_MEMBER"]
