"""
Entitlement resolution for course resources.

The decision is a fixed, ordered chain of pure rules over an AccessSnapshot:

    1. enrollment   - paid -> granted via subscription, demo -> granted via demo.
                      Either way the chain stops here, for every resource type.
    2. subscription - active, unexpired, and the plan covers the resource type.
    3. trial        - an unexpired grant for exactly this resource type.
    4. deny         - with a reason the UI can act on (expired / trial_available / no_access).

load_snapshot() does the reads; resolve() never touches storage. resolve_access()
ties the two together and fails closed when storage is unavailable.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentType, ResourceType
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.models.trial_grant import TrialGrant
from app.services import enrollments, subscriptions, trials
from app.utils.dt import as_utc_aware, utcnow

logger = logging.getLogger(__name__)


class AccessVia(str, enum.Enum):
    subscription = "subscription"
    demo = "demo"
    none = "none"


class DenialReason(str, enum.Enum):
    no_access = "no_access"
    trial_available = "trial_available"
    expired = "expired"
    storage_unavailable = "storage_unavailable"


@dataclass(frozen=True)
class AccessSnapshot:
    """Everything the rules need, read once per request."""
    user_id: int
    course_id: int
    resource_type: ResourceType
    now: datetime
    enrollment: Enrollment | None = None
    subscription: Subscription | None = None
    plan: SubscriptionPlan | None = None
    grant: TrialGrant | None = None
    trial_used: bool = True
    subscription_lapsed: bool = False
    grant_expired: bool = False


@dataclass(frozen=True)
class AccessVerdict:
    granted: bool
    via: AccessVia
    detail: str
    reason: DenialReason | None = None
    resource_type: ResourceType | None = None
    subscription: Subscription | None = None
    plan: SubscriptionPlan | None = None
    grant: TrialGrant | None = None

    def to_dict(self) -> dict:
        out = {
            "granted": self.granted,
            "via": self.via.value,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
            "resource_type": self.resource_type.value if self.resource_type else None,
            "subscription": None,
            "trial": None,
        }
        if self.subscription is not None and self.plan is not None:
            out["subscription"] = {
                "id": self.subscription.id,
                "plan_name": self.plan.name,
                "plan_type": self.plan.type,
                "expires_at": self.subscription.expires_at,
            }
        if self.grant is not None:
            out["trial"] = {
                "id": self.grant.id,
                "resource_type": self.grant.resource_type,
                "expires_at": self.grant.expires_at,
            }
        return out


Rule = Callable[[AccessSnapshot], AccessVerdict | None]


def enrollment_rule(snap: AccessSnapshot) -> AccessVerdict | None:
    if snap.enrollment is None:
        return None
    # grant expiry and resource-type scope are deliberately not consulted here
    if snap.enrollment.type == EnrollmentType.paid.value:
        return AccessVerdict(True, AccessVia.subscription, "Paid enrollment access", resource_type=snap.resource_type)
    return AccessVerdict(True, AccessVia.demo, "Demo enrollment access", resource_type=snap.resource_type)


def subscription_rule(snap: AccessSnapshot) -> AccessVerdict | None:
    if snap.subscription is None or snap.plan is None:
        return None
    if not subscriptions.is_covering(snap.subscription, snap.now):
        return None
    if not subscriptions.plan_covers(snap.plan.type, snap.resource_type):
        return None
    return AccessVerdict(
        True,
        AccessVia.subscription,
        f"Covered by plan {snap.plan.name}",
        resource_type=snap.resource_type,
        subscription=snap.subscription,
        plan=snap.plan,
    )


def trial_rule(snap: AccessSnapshot) -> AccessVerdict | None:
    if snap.grant is None:
        return None
    if snap.grant.resource_type != snap.resource_type.value:
        return None
    if as_utc_aware(snap.grant.expires_at) <= snap.now:
        return None
    return AccessVerdict(True, AccessVia.demo, "Trial access", resource_type=snap.resource_type, grant=snap.grant)


def deny(snap: AccessSnapshot) -> AccessVerdict:
    rt = snap.resource_type.value
    if snap.subscription_lapsed or snap.grant_expired:
        reason, detail = DenialReason.expired, f"Your {rt} access for this course has expired"
    elif not snap.trial_used:
        reason, detail = DenialReason.trial_available, f"Start a free trial to access {rt}"
    else:
        reason, detail = DenialReason.no_access, f"No {rt} access found for this course"
    return AccessVerdict(False, AccessVia.none, detail, reason=reason, resource_type=snap.resource_type)


RULES: tuple[Rule, ...] = (enrollment_rule, subscription_rule, trial_rule)


def resolve(snap: AccessSnapshot, rules: tuple[Rule, ...] = RULES) -> AccessVerdict:
    for rule in rules:
        verdict = rule(snap)
        if verdict is not None:
            return verdict
    return deny(snap)


def load_snapshot(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str,
    now: datetime | None = None,
) -> AccessSnapshot:
    """Read the ledgers for one request. Later ledgers are skipped once an earlier one decides."""
    rt = ResourceType(resource_type)
    now = now or utcnow()
    snap = dict(user_id=user_id, course_id=course_id, resource_type=rt, now=now)

    enrollment = enrollments.get_enrollment(db, user_id, course_id)
    if enrollment is not None:
        return AccessSnapshot(**snap, enrollment=enrollment)

    active = subscriptions.get_active_subscription(db, user_id, course_id, now)
    if active is not None and subscriptions.plan_covers(active[1].type, rt):
        return AccessSnapshot(**snap, subscription=active[0], plan=active[1])

    grant = trials.get_valid_grant(db, user_id, course_id, rt, now)
    if grant is not None:
        return AccessSnapshot(**snap, grant=grant)

    return AccessSnapshot(
        **snap,
        trial_used=not trials.is_eligible(db, user_id),
        subscription_lapsed=subscriptions.has_lapsed_subscription(db, user_id, course_id, now),
        grant_expired=trials.has_expired_grant(db, user_id, course_id, rt, now),
    )


def resolve_access(
    db: Session,
    user_id: int,
    course_id: int,
    resource_type: str,
    now: datetime | None = None,
) -> AccessVerdict:
    """Load and resolve. A storage failure yields a denial, never a grant."""
    rt = ResourceType(resource_type)
    try:
        snap = load_snapshot(db, user_id, course_id, rt, now)
    except SQLAlchemyError:
        logger.exception("Access check failed for user %s course %s (%s); denying", user_id, course_id, rt.value)
        return AccessVerdict(
            False,
            AccessVia.none,
            "Error checking access permissions",
            reason=DenialReason.storage_unavailable,
            resource_type=rt,
        )

    verdict = resolve(snap)
    logger.debug(
        "Access user=%s course=%s type=%s granted=%s via=%s",
        user_id, course_id, rt.value, verdict.granted, verdict.via.value,
    )
    return verdict
