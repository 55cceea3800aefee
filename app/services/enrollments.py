"""
Enrollment ledger: one row per (user, course), either "paid" or "demo".

Rows are never deleted by access flows; only an explicit admin removal does that.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AccessError, EnrollmentConflict, EnrollmentNotFound, StorageUnavailable
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentType
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription

logger = logging.getLogger(__name__)


def get_enrollment(db: Session, user_id: int, course_id: int) -> Enrollment | None:
    return db.query(Enrollment).filter(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id,
    ).first()


def upsert_demo_enrollment(db: Session, user_id: int, course_id: int) -> Enrollment:
    """
    Make sure the user is a member of the course, creating a "demo" row if needed.

    Safe to call repeatedly. An existing row (paid or demo) is returned untouched,
    so a paid enrollment is never downgraded. Does not commit.
    """
    existing = get_enrollment(db, user_id, course_id)
    if existing:
        return existing

    enrollment = Enrollment(user_id=user_id, course_id=course_id, type=EnrollmentType.demo.value)
    try:
        # savepoint so losing the unique-constraint race doesn't poison the outer transaction
        with db.begin_nested():
            db.add(enrollment)
    except IntegrityError:
        logger.info("Demo enrollment for user %s course %s created concurrently", user_id, course_id)
        return get_enrollment(db, user_id, course_id)
    return enrollment


def create_paid_enrollment(
    db: Session,
    user_id: int,
    course_id: int,
    subscription_id: int | None = None,
) -> Enrollment:
    """
    Insert a paid enrollment. Any existing row for the pair is a conflict:
    it usually means the same payment was approved twice. Does not commit.
    """
    if get_enrollment(db, user_id, course_id):
        logger.error("Paid enrollment conflict: user %s course %s already enrolled", user_id, course_id)
        raise EnrollmentConflict(user_id, course_id)

    enrollment = Enrollment(
        user_id=user_id,
        course_id=course_id,
        type=EnrollmentType.paid.value,
        subscription_id=subscription_id,
    )
    try:
        with db.begin_nested():
            db.add(enrollment)
    except IntegrityError:
        logger.error("Paid enrollment conflict (race): user %s course %s", user_id, course_id)
        raise EnrollmentConflict(user_id, course_id)
    return enrollment


def promote_demo_enrollment(db: Session, enrollment: Enrollment, subscription_id: int | None) -> Enrollment:
    """Turn a trial ("demo") membership into a paid one after a purchase."""
    if enrollment.type != EnrollmentType.demo.value:
        raise EnrollmentConflict(enrollment.user_id, enrollment.course_id)
    enrollment.type = EnrollmentType.paid.value
    enrollment.subscription_id = subscription_id
    db.flush()
    return enrollment


def list_enrollments(
    db: Session,
    course_id: int | None = None,
    enrollment_type: str | None = None,
) -> list[tuple[Enrollment, Subscription | None, SubscriptionPlan | None]]:
    """Admin view: every membership with the subscription (and plan) it is linked to, newest first."""
    q = (
        db.query(Enrollment, Subscription, SubscriptionPlan)
        .outerjoin(Subscription, Subscription.id == Enrollment.subscription_id)
        .outerjoin(SubscriptionPlan, SubscriptionPlan.id == Subscription.plan_id)
    )
    if course_id is not None:
        q = q.filter(Enrollment.course_id == course_id)
    if enrollment_type:
        q = q.filter(Enrollment.type == EnrollmentType(enrollment_type).value)
    return [(e, s, p) for e, s, p in q.order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc()).all()]


def enroll_manually(db: Session, user_id: int, course_id: int) -> Enrollment:
    """Direct paid membership granted by an admin, not backed by any subscription."""
    try:
        enrollment = create_paid_enrollment(db, user_id, course_id, subscription_id=None)
        db.commit()
    except AccessError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Manual enrollment failed for user %s course %s", user_id, course_id)
        raise StorageUnavailable("Could not create the enrollment", cause=e) from e

    db.refresh(enrollment)
    logger.info("Manually enrolled user %s in course %s", user_id, course_id)
    return enrollment


def remove_enrollment(db: Session, enrollment_id: int) -> None:
    """
    Admin removal of a membership. The linked subscription goes with it, so the
    user loses course access through both ledgers. Trial grants are untouched.
    """
    enrollment = db.get(Enrollment, enrollment_id)
    if not enrollment:
        raise EnrollmentNotFound(enrollment_id)

    subscription_id = enrollment.subscription_id
    user_id, course_id = enrollment.user_id, enrollment.course_id
    try:
        db.delete(enrollment)
        db.flush()
        if subscription_id is not None:
            db.query(Subscription).filter(Subscription.id == subscription_id).delete(synchronize_session="fetch")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to remove enrollment %s", enrollment_id)
        raise StorageUnavailable("Could not remove the enrollment", cause=e) from e

    logger.info(
        "Removed enrollment %s (user %s course %s, subscription %s)",
        enrollment_id, user_id, course_id, subscription_id,
    )
