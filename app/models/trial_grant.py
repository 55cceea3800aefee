from datetime import datetime
from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.models.enums import ResourceType, values

class TrialGrant(Base):
    __tablename__ = "trial_grants"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    resource_type: Mapped[str] = mapped_column(Enum(*values(ResourceType), name="resource_type"))

    # Fixed at creation (used_at + trial_duration_hours); grants are never extended
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Set when an admin issued the grant on the user's behalf
    granted_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    course = relationship("Course")
    # revoking a grant also drops what was watched under it
    usage = relationship("TrialUsage", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "resource_type", name="uq_trial_grants_scope"),
    )
