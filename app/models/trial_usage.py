from datetime import datetime
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.models.enums import ResourceType, values

class TrialUsage(Base):
    """One row per resource a user actually opened during a trial."""
    __tablename__ = "trial_usage"

    id: Mapped[int] = mapped_column(primary_key=True)

    grant_id: Mapped[int] = mapped_column(ForeignKey("trial_grants.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    resource_type: Mapped[str] = mapped_column(Enum(*values(ResourceType), name="usage_resource_type"))

    # A lecture_recordings.id or live_classes.id, depending on resource_type
    resource_id: Mapped[int] = mapped_column(Integer)

    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    # Copied from the grant; usage stops being reported once it passes
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    __table_args__ = (
        UniqueConstraint("grant_id", "resource_id", name="uq_trial_usage_grant_resource"),
    )
