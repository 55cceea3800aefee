from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.api.deps_access import get_course_or_404
from app.db.session import get_db
from app.models.enums import EnrollmentType
from app.models.user import User
from app.schemas.enrollments import AdminEnrollmentOut, EnrollmentChangeIn, EnrollmentOut, ManualEnrollmentIn
from app.schemas.subscriptions import SubscriptionOut
from app.services import enrollments, subscriptions

router = APIRouter(prefix="/admin/enrollments", tags=["admin"])

def _admin_view(enrollment, subscription=None, plan=None) -> AdminEnrollmentOut:
    out = AdminEnrollmentOut.model_validate(enrollment)
    if subscription is not None:
        out.subscription = SubscriptionOut.model_validate(subscription)
    if plan is not None:
        out.plan_name, out.plan_type = plan.name, plan.type
    return out

@router.get("", response_model=list[AdminEnrollmentOut])
def list_enrollments(
    course_id: int | None = None,
    type: EnrollmentType | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    rows = enrollments.list_enrollments(db, course_id=course_id, enrollment_type=type.value if type else None)
    return [_admin_view(e, s, p) for e, s, p in rows]

# Direct paid membership with no subscription behind it (scholarships, staff family, offline payment)
@router.post("", response_model=EnrollmentOut, status_code=201)
def enroll_manually(
    payload: ManualEnrollmentIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if not db.get(User, payload.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    get_course_or_404(db, payload.course_id)
    return enrollments.enroll_manually(db, payload.user_id, payload.course_id)

# promote_to_paid (demo -> paid with a new subscription) or change_plan (paid, re-pointed subscription)
@router.patch("/{enrollment_id}", response_model=AdminEnrollmentOut)
def change_enrollment(
    enrollment_id: int,
    payload: EnrollmentChangeIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    sub, enrollment = subscriptions.change_enrollment_plan(db, enrollment_id, payload.action, payload.plan_id)
    return _admin_view(enrollment, sub, sub.plan)

# Removes the membership itself, together with its linked subscription
@router.delete("/{enrollment_id}", status_code=204)
def remove_enrollment(enrollment_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    enrollments.remove_enrollment(db, enrollment_id)
