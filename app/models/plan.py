from datetime import date, datetime
from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, String, Enum, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.models.enums import PlanType, values
from app.utils.dt import utcnow

class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(120))

    # Which resource types the plan unlocks (see services.subscriptions.plan_covers)
    type: Mapped[str] = mapped_column(
        Enum(*values(PlanType), name="plan_type"),
        index=True,
    )

    # Money (use Numeric for currency)
    price: Mapped[float] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default="PKR")

    # Duration: a number of months from purchase, or a fixed calendar cutoff
    duration_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_until_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "(duration_months IS NULL) <> (duration_until_date IS NULL)",
            name="ck_subscription_plans_one_duration",
        ),
    )
