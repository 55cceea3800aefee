from datetime import datetime
from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.models.enums import Role, values
from app.utils.dt import utcnow

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str | None] = mapped_column(String(120), nullable=True)

    role: Mapped[str] = mapped_column(
        Enum(*values(Role), name="user_role"),
        default=Role.student.value,
    )

    # Lifetime trial marker. Flipped false -> true exactly once by the trial service
    # through a conditional UPDATE; never reset, not even when a grant is revoked.
    trial_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trial_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
