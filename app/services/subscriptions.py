"""
Subscription ledger.

A subscription is a purchased plan bound to a (user, course). It only covers a
request while its status is "active" and its expires_at is still in the future;
an active-status row past its expiry is treated exactly like no row at all.
"""

import logging
from datetime import datetime

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    AccessError,
    EnrollmentNotFound,
    InvalidEnrollmentChange,
    PlanUnavailable,
    StorageUnavailable,
)
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentAction, EnrollmentType, PlanType, ResourceType, SubscriptionStatus
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.services.enrollments import create_paid_enrollment, get_enrollment, promote_demo_enrollment
from app.utils.dt import add_months, as_utc_aware, end_of_day_utc, utcnow

logger = logging.getLogger(__name__)

# Which resource types each plan type unlocks
PLAN_COVERAGE: dict[PlanType, frozenset[ResourceType]] = {
    PlanType.recordings_only: frozenset({ResourceType.lecture_recording}),
    PlanType.live_classes_only: frozenset({ResourceType.live_class}),
    PlanType.recordings_and_live: frozenset({ResourceType.lecture_recording, ResourceType.live_class}),
}


def plan_covers(plan_type: str, resource_type: str) -> bool:
    return ResourceType(resource_type) in PLAN_COVERAGE[PlanType(plan_type)]


def get_active_subscription(
    db: Session,
    user_id: int,
    course_id: int,
    now: datetime | None = None,
) -> tuple[Subscription, SubscriptionPlan] | None:
    now = now or utcnow()
    row = (
        db.query(Subscription, SubscriptionPlan)
        .join(SubscriptionPlan, SubscriptionPlan.id == Subscription.plan_id)
        .filter(
            Subscription.user_id == user_id,
            Subscription.course_id == course_id,
            Subscription.status == SubscriptionStatus.active.value,
            Subscription.expires_at > now,
        )
        .order_by(Subscription.expires_at.desc())
        .first()
    )
    if not row:
        return None
    return row[0], row[1]


def has_lapsed_subscription(db: Session, user_id: int, course_id: int, now: datetime | None = None) -> bool:
    """True if a subscription for this course ran out. Cancelled ones do not count: there is nothing to renew."""
    now = now or utcnow()
    lapsed = db.query(Subscription.id).filter(
        Subscription.user_id == user_id,
        Subscription.course_id == course_id,
        or_(
            Subscription.status == SubscriptionStatus.expired.value,
            and_(
                Subscription.status == SubscriptionStatus.active.value,
                Subscription.expires_at <= now,
            ),
        ),
    ).first()
    return lapsed is not None


def list_user_subscriptions(db: Session, user_id: int) -> list[tuple[Subscription, SubscriptionPlan]]:
    return (
        db.query(Subscription, SubscriptionPlan)
        .join(SubscriptionPlan, SubscriptionPlan.id == Subscription.plan_id)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
        .all()
    )


def is_covering(subscription: Subscription, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return (
        subscription.status == SubscriptionStatus.active.value
        and as_utc_aware(subscription.expires_at) > now
    )


def compute_expiry(plan: SubscriptionPlan, start: datetime) -> datetime:
    """Month-based plans run from the purchase; dated plans end on their cutoff day."""
    if plan.duration_months:
        return add_months(start, int(plan.duration_months))
    if plan.duration_until_date:
        return end_of_day_utc(plan.duration_until_date)
    raise PlanUnavailable(f"Plan {plan.id} has no duration configured")


def _purchasable_plan(db: Session, plan_id: int, now: datetime) -> tuple[SubscriptionPlan, datetime]:
    plan = db.get(SubscriptionPlan, plan_id)
    if not plan or not plan.is_active:
        raise PlanUnavailable(f"Plan {plan_id} is not available")

    expires_at = compute_expiry(plan, now)
    if expires_at <= now:
        raise PlanUnavailable(f"Plan {plan_id} ended on {plan.duration_until_date}")
    return plan, expires_at


def activate_purchase(
    db: Session,
    user_id: int,
    course_id: int,
    plan_id: int,
    now: datetime | None = None,
) -> tuple[Subscription, Enrollment]:
    """
    Record an approved payment: an active subscription plus a paid enrollment
    linked to it, committed together.

    A trial ("demo") membership of the course is promoted to paid; an existing
    paid membership raises EnrollmentConflict and nothing is written.
    """
    now = now or utcnow()
    plan, expires_at = _purchasable_plan(db, plan_id, now)

    try:
        subscription = Subscription(
            user_id=user_id,
            course_id=course_id,
            plan_id=plan.id,
            status=SubscriptionStatus.active.value,
            starts_at=now,
            expires_at=expires_at,
        )
        db.add(subscription)
        db.flush()  # assigns subscription.id without committing

        existing = get_enrollment(db, user_id, course_id)
        if existing and existing.type == EnrollmentType.demo.value:
            enrollment = promote_demo_enrollment(db, existing, subscription.id)
        else:
            enrollment = create_paid_enrollment(db, user_id, course_id, subscription.id)

        db.commit()
    except AccessError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to activate plan %s for user %s course %s", plan_id, user_id, course_id)
        raise StorageUnavailable("Could not record the purchase", cause=e) from e

    db.refresh(subscription)
    db.refresh(enrollment)
    logger.info(
        "Activated plan %s (%s) for user %s course %s until %s",
        plan.id, plan.type, user_id, course_id, expires_at.isoformat(),
    )
    return subscription, enrollment


def change_enrollment_plan(
    db: Session,
    enrollment_id: int,
    action: str,
    plan_id: int,
    now: datetime | None = None,
) -> tuple[Subscription, Enrollment]:
    """
    Admin plan management on an existing membership.

    promote_to_paid: a demo enrollment becomes paid with a new subscription,
    exactly as if the purchase had been approved.
    change_plan: a paid enrollment moves to another plan. Its linked
    subscription is re-pointed and its expiry recomputed from now; a manual
    paid enrollment without a subscription gets one.
    """
    action = EnrollmentAction(action)
    now = now or utcnow()

    enrollment = db.get(Enrollment, enrollment_id)
    if not enrollment:
        raise EnrollmentNotFound(enrollment_id)

    if action == EnrollmentAction.promote_to_paid:
        if enrollment.type != EnrollmentType.demo.value:
            raise InvalidEnrollmentChange("Only demo enrollments can be promoted to paid")
        return activate_purchase(db, enrollment.user_id, enrollment.course_id, plan_id, now=now)

    if enrollment.type != EnrollmentType.paid.value:
        raise InvalidEnrollmentChange("Only paid enrollments can change plan")
    plan, expires_at = _purchasable_plan(db, plan_id, now)

    try:
        subscription = db.get(Subscription, enrollment.subscription_id) if enrollment.subscription_id else None
        if subscription is None:
            subscription = Subscription(
                user_id=enrollment.user_id,
                course_id=enrollment.course_id,
                starts_at=now,
            )
            db.add(subscription)
        subscription.plan_id = plan.id
        subscription.status = SubscriptionStatus.active.value
        subscription.expires_at = expires_at
        db.flush()

        enrollment.subscription_id = subscription.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to change plan of enrollment %s", enrollment_id)
        raise StorageUnavailable("Could not change the plan", cause=e) from e

    db.refresh(subscription)
    db.refresh(enrollment)
    logger.info(
        "Enrollment %s moved to plan %s (%s) until %s",
        enrollment_id, plan.id, plan.type, expires_at.isoformat(),
    )
    return subscription, enrollment


def expire_lapsed_subscriptions(db: Session, now: datetime | None = None) -> int:
    """
    Housekeeping: mark active rows past their expiry as expired.
    Access checks never depend on this having run.
    """
    now = now or utcnow()
    result = db.execute(
        update(Subscription)
        .where(
            Subscription.status == SubscriptionStatus.active.value,
            Subscription.expires_at <= now,
        )
        .values(status=SubscriptionStatus.expired.value)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.info("Expired %s lapsed subscriptions", result.rowcount)
    return result.rowcount
