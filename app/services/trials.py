"""
Trial grant service.

Every account gets exactly one trial in its lifetime: one course, one resource
type, for trial_duration_hours (24h by default). The lifetime marker is
users.trial_used, and the Eligible -> Consumed transition is a single
conditional UPDATE, so two concurrent requests can never both win it.

Guests never reach this module; their recording preview lives in guest_preview.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AccessError,
    DuplicatePending,
    GrantNotFound,
    NoActiveTrial,
    NotEligible,
    StorageUnavailable,
)
from app.models.enums import ResourceType
from app.models.trial_grant import TrialGrant
from app.models.trial_usage import TrialUsage
from app.models.user import User
from app.services.enrollments import upsert_demo_enrollment
from app.utils.dt import as_utc_aware, utcnow

logger = logging.getLogger(__name__)

GRANT_STATUSES = ("active", "expired", "all")


def is_eligible(db: Session, user_id: int) -> bool:
    trial_used = db.query(User.trial_used).filter(User.id == user_id).scalar()
    return trial_used is False


def get_valid_grant(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str,
    now: datetime | None = None,
) -> TrialGrant | None:
    now = now or utcnow()
    return db.query(TrialGrant).filter(
        TrialGrant.user_id == user_id,
        TrialGrant.course_id == course_id,
        TrialGrant.resource_type == ResourceType(resource_type).value,
        TrialGrant.expires_at > now,
    ).first()


def has_expired_grant(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str,
    now: datetime | None = None,
) -> bool:
    now = now or utcnow()
    expired = db.query(TrialGrant.id).filter(
        TrialGrant.user_id == user_id,
        TrialGrant.course_id == course_id,
        TrialGrant.resource_type == ResourceType(resource_type).value,
        TrialGrant.expires_at <= now,
    ).first()
    return expired is not None


def _issue(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: ResourceType,
    now: datetime,
    granted_by: int | None = None,
) -> TrialGrant:
    # the scope is unique, so a dead grant for it has to go before a new one can exist
    dead = select(TrialGrant.id).where(
        TrialGrant.user_id == user_id,
        TrialGrant.course_id == course_id,
        TrialGrant.resource_type == resource_type.value,
        TrialGrant.expires_at <= now,
    )
    db.query(TrialUsage).filter(TrialUsage.grant_id.in_(dead)).delete(synchronize_session="fetch")
    db.query(TrialGrant).filter(TrialGrant.id.in_(dead)).delete(synchronize_session="fetch")

    trial = TrialGrant(
        user_id=user_id,
        course_id=course_id,
        resource_type=resource_type.value,
        expires_at=now + timedelta(hours=settings.trial_duration_hours),
        used_at=now,
        granted_by=granted_by,
    )
    db.add(trial)
    db.flush()

    if settings.trial_creates_demo_enrollment:
        upsert_demo_enrollment(db, user_id, course_id)

    return trial


def grant(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str,
    now: datetime | None = None,
) -> TrialGrant:
    """
    Issue the user's one lifetime trial for (course, resource_type).

    Raises NotEligible if the lifetime trial is already consumed and
    DuplicatePending if an unexpired grant already covers this exact scope.
    Consuming eligibility, inserting the grant and the demo enrollment commit
    together or not at all.
    """
    rt = ResourceType(resource_type)
    now = now or utcnow()

    try:
        consumed = db.execute(
            update(User)
            .where(User.id == user_id, User.trial_used.is_(False))
            .values(trial_used=True, trial_used_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        if consumed != 1:
            raise NotEligible(user_id)

        if get_valid_grant(db, user_id, course_id, rt, now):
            raise DuplicatePending(user_id, course_id, rt.value)

        trial = _issue(db, user_id, course_id, rt, now)
        db.commit()
    except AccessError as e:
        db.rollback()
        logger.info("Trial refused for user %s course %s (%s): %s", user_id, course_id, rt.value, e.error_code)
        raise
    except IntegrityError as e:
        db.rollback()
        raise DuplicatePending(user_id, course_id, rt.value) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Trial grant failed for user %s course %s", user_id, course_id)
        raise StorageUnavailable("Could not issue trial", cause=e) from e

    db.refresh(trial)
    logger.info(
        "Trial granted: user %s course %s %s until %s",
        user_id, course_id, rt.value, as_utc_aware(trial.expires_at).isoformat(),
    )
    return trial


def admin_grant(
    db: Session,
    admin_id: int,
    user_id: int,
    course_id: int,
    resource_type: str,
    now: datetime | None = None,
) -> TrialGrant:
    """
    Grant a trial on a user's behalf. Admin grants neither check nor consume the
    user's lifetime eligibility, but still refuse to stack on a live grant.
    """
    rt = ResourceType(resource_type)
    now = now or utcnow()

    try:
        if get_valid_grant(db, user_id, course_id, rt, now):
            raise DuplicatePending(user_id, course_id, rt.value)
        trial = _issue(db, user_id, course_id, rt, now, granted_by=admin_id)
        db.commit()
    except AccessError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        raise DuplicatePending(user_id, course_id, rt.value) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Admin trial grant failed for user %s course %s", user_id, course_id)
        raise StorageUnavailable("Could not issue trial", cause=e) from e

    db.refresh(trial)
    logger.info("Admin %s granted %s trial to user %s on course %s", admin_id, rt.value, user_id, course_id)
    return trial


def revoke(db: Session, grant_id: int) -> None:
    """Hard-delete a grant. The user's lifetime eligibility is not refunded."""
    trial = db.get(TrialGrant, grant_id)
    if not trial:
        raise GrantNotFound(grant_id)
    user_id, course_id = trial.user_id, trial.course_id
    db.delete(trial)
    db.commit()
    logger.info("Revoked trial grant %s (user %s course %s)", grant_id, user_id, course_id)


def list_user_grants(db: Session, user_id: int) -> list[TrialGrant]:
    return (
        db.query(TrialGrant)
        .filter(TrialGrant.user_id == user_id)
        .order_by(TrialGrant.used_at.desc())
        .all()
    )


def list_grants(
    db: Session,
    course_id: int | None = None,
    status: str = "all",
    now: datetime | None = None,
) -> list[TrialGrant]:
    if status not in GRANT_STATUSES:
        raise ValueError(f"status must be one of {GRANT_STATUSES}")
    now = now or utcnow()

    q = db.query(TrialGrant)
    if course_id is not None:
        q = q.filter(TrialGrant.course_id == course_id)
    if status == "active":
        q = q.filter(TrialGrant.expires_at > now)
    elif status == "expired":
        q = q.filter(TrialGrant.expires_at <= now)
    return q.order_by(TrialGrant.used_at.desc(), TrialGrant.id.desc()).all()


def grant_stats(grants: list[TrialGrant], now: datetime | None = None) -> dict[str, Any]:
    now = now or utcnow()
    active = sum(1 for g in grants if as_utc_aware(g.expires_at) > now)
    by_type = Counter(g.resource_type for g in grants)
    return {
        "total": len(grants),
        "active": active,
        "expired": len(grants) - active,
        "by_type": {rt.value: by_type.get(rt.value, 0) for rt in ResourceType},
    }


def track_usage(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str,
    resource_id: int,
    now: datetime | None = None,
) -> tuple[TrialUsage, bool]:
    """
    Record that the user opened `resource_id` under their live grant for the scope.
    Returns (row, created); tracking the same resource twice is not an error.
    """
    rt = ResourceType(resource_type)
    now = now or utcnow()

    trial = get_valid_grant(db, user_id, course_id, rt, now)
    if trial is None:
        raise NoActiveTrial(user_id, course_id, rt.value)

    def _existing():
        return db.query(TrialUsage).filter(
            TrialUsage.grant_id == trial.id,
            TrialUsage.resource_id == resource_id,
        ).first()

    found = _existing()
    if found:
        return found, False

    usage = TrialUsage(
        grant_id=trial.id,
        user_id=user_id,
        course_id=course_id,
        resource_type=rt.value,
        resource_id=resource_id,
        used_at=now,
        expires_at=trial.expires_at,
    )
    try:
        db.add(usage)
        db.commit()
    except IntegrityError:
        db.rollback()
        return _existing(), False
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Could not record trial usage for user %s course %s", user_id, course_id)
        raise StorageUnavailable("Could not record trial usage", cause=e) from e

    db.refresh(usage)
    logger.info("Trial usage: user %s opened %s %s on course %s", user_id, rt.value, resource_id, course_id)
    return usage, True


def list_usage(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str = ResourceType.lecture_recording.value,
    now: datetime | None = None,
) -> list[TrialUsage]:
    """What the user has opened under a still-running trial, in viewing order."""
    now = now or utcnow()
    return (
        db.query(TrialUsage)
        .filter(
            TrialUsage.user_id == user_id,
            TrialUsage.course_id == course_id,
            TrialUsage.resource_type == ResourceType(resource_type).value,
            TrialUsage.expires_at > now,
        )
        .order_by(TrialUsage.used_at.asc(), TrialUsage.id.asc())
        .all()
    )
