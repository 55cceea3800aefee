"""Subscription plan catalog (admin-managed, read-only for access checks)."""

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PlanUnavailable, StorageUnavailable
from app.models.plan import SubscriptionPlan

logger = logging.getLogger(__name__)


def list_plans(db: Session, active_only: bool = True, plan_type: str | None = None) -> list[SubscriptionPlan]:
    q = db.query(SubscriptionPlan)
    if active_only:
        q = q.filter(SubscriptionPlan.is_active.is_(True))
    if plan_type:
        q = q.filter(SubscriptionPlan.type == plan_type)
    return q.order_by(SubscriptionPlan.price, SubscriptionPlan.id).all()


def get_plan(db: Session, plan_id: int) -> SubscriptionPlan:
    plan = db.get(SubscriptionPlan, plan_id)
    if not plan:
        raise PlanUnavailable(f"Plan {plan_id} not found")
    return plan


def create_plan(db: Session, data: dict[str, Any]) -> SubscriptionPlan:
    data = {**data}
    data.setdefault("currency", settings.currency)
    plan = SubscriptionPlan(**data)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("Created plan %s (%s)", plan.id, plan.type)
    return plan


def update_plan(db: Session, plan_id: int, changes: dict[str, Any]) -> SubscriptionPlan:
    plan = get_plan(db, plan_id)
    try:
        for k, v in changes.items():
            setattr(plan, k, v)

        # switching duration style clears the other field
        if changes.get("duration_months") is not None:
            plan.duration_until_date = None
        elif changes.get("duration_until_date") is not None:
            plan.duration_months = None

        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("Rejected update of plan %s: %s", plan_id, sorted(changes))
        raise PlanUnavailable(f"Plan {plan_id} update leaves it without exactly one duration") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to update plan %s", plan_id)
        raise StorageUnavailable("Could not update the plan", cause=e) from e

    db.refresh(plan)
    return plan


def deactivate_plan(db: Session, plan_id: int) -> SubscriptionPlan:
    """Plans are never deleted: existing subscriptions keep referencing them."""
    plan = get_plan(db, plan_id)
    plan.is_active = False
    db.commit()
    db.refresh(plan)
    logger.info("Deactivated plan %s", plan.id)
    return plan
