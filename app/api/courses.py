from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.api.deps_access import get_course_or_404, require_access
from app.db.session import get_db
from app.models.content import LectureRecording, LiveClass
from app.models.enums import ResourceType, STAFF_ROLES
from app.models.user import User
from app.schemas.content import CourseRecordingsOut, LiveClassOut, RecordingOut
from app.services.guest_preview import guest_preview
from app.services.resolver import AccessVerdict

router = APIRouter(prefix="/courses", tags=["courses"])

# Unauthenticated: the oldest published recording is playable, the rest are teasers
@router.get("/{course_id}/recordings/preview", response_model=CourseRecordingsOut)
def preview_recordings(course_id: int, db: Session = Depends(get_db)):
    get_course_or_404(db, course_id)
    return CourseRecordingsOut(
        course_id=course_id,
        via="guest",
        recordings=[RecordingOut.model_validate(p) for p in guest_preview(db, course_id)],
    )

@router.get("/{course_id}/recordings", response_model=CourseRecordingsOut)
def list_recordings(
    course_id: int,
    verdict: AccessVerdict | None = Depends(require_access(ResourceType.lecture_recording)),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    q = db.query(LectureRecording).filter(LectureRecording.course_id == course_id)
    # staff also see drafts
    if user.role not in STAFF_ROLES:
        q = q.filter(LectureRecording.is_published.is_(True))
    recordings = q.order_by(LectureRecording.created_at.asc(), LectureRecording.id.asc()).all()

    return CourseRecordingsOut(
        course_id=course_id,
        via=verdict.via.value if verdict else "staff",
        recordings=[
            RecordingOut(
                id=r.id,
                title=r.title,
                description=r.description,
                duration_seconds=r.duration_seconds,
                thumbnail_url=r.thumbnail_url,
                created_at=r.created_at,
                locked=False,
                video_url=r.video_url,
            )
            for r in recordings
        ],
    )

# Live classes need an identity; there is no guest path
@router.get("/{course_id}/live-classes", response_model=list[LiveClassOut])
def list_live_classes(
    course_id: int,
    verdict: AccessVerdict | None = Depends(require_access(ResourceType.live_class)),
    db: Session = Depends(get_db),
):
    return (
        db.query(LiveClass)
        .filter(LiveClass.course_id == course_id)
        .order_by(LiveClass.scheduled_at.asc())
        .all()
    )
