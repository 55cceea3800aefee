from datetime import datetime
from sqlalchemy import DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.models.enums import SubscriptionStatus, values
from app.utils.dt import utcnow

class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    plan_id: Mapped[int] = mapped_column(ForeignKey("subscription_plans.id"), index=True)

    # A row only covers a request while status is active AND expires_at is in the future
    status: Mapped[str] = mapped_column(
        Enum(*values(SubscriptionStatus), name="subscription_status"),
        default=SubscriptionStatus.active.value,
    )

    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user = relationship("User")
    plan = relationship("SubscriptionPlan")

    __table_args__ = (
        Index("ix_subscriptions_user_course_status", "user_id", "course_id", "status"),
    )
