from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user
from app.models.content import LectureRecording, LiveClass
from app.models.course import Course
from app.models.enums import STAFF_ROLES, ResourceType
from app.models.user import User
from app.services.resolver import AccessVerdict, DenialReason, resolve_access


def get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.get(Course, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def enforce(verdict: AccessVerdict) -> AccessVerdict:
    """Turn a denied verdict into the structured HTTP error the UI acts on."""
    if verdict.granted:
        return verdict

    status_code = 503 if verdict.reason == DenialReason.storage_unavailable else 402
    raise HTTPException(
        status_code=status_code,
        detail={
            "reason": verdict.reason.value if verdict.reason else DenialReason.no_access.value,
            "message": verdict.detail,
            "resource_type": verdict.resource_type.value if verdict.resource_type else None,
        },
    )


def require_access(resource_type: ResourceType):
    """
    Dependency factory: the caller must be entitled to `resource_type` in the
    path's course. Staff (teachers and admins) are not subject to entitlement
    and get None instead of a verdict.
    """
    def _dep(
        course_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> AccessVerdict | None:
        get_course_or_404(db, course_id)
        if user.role in STAFF_ROLES:
            return None
        return enforce(resolve_access(db, user.id, course_id, resource_type))
    return _dep


def get_resource_or_404(db: Session, course_id: int, resource_type: ResourceType, resource_id: int):
    model = LectureRecording if resource_type == ResourceType.lecture_recording else LiveClass
    resource = db.get(model, resource_id)
    if not resource or resource.course_id != course_id:
        raise HTTPException(status_code=404, detail=f"{resource_type.value} not found in this course")
    return resource
