"""
What an unauthenticated visitor may see of a course.

Published lecture recordings only, oldest first. The oldest one(s) are playable;
the rest are listed with their metadata but without a video_url, so the visitor
can see there is more behind a signup. Live classes are never exposed to guests,
and nothing here touches trial eligibility or writes anything.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.content import LectureRecording


@dataclass(frozen=True)
class RecordingPreview:
    id: int
    title: str
    description: str | None
    duration_seconds: int | None
    thumbnail_url: str | None
    created_at: datetime
    locked: bool
    video_url: str | None


def guest_preview(db: Session, course_id: int, playable: int | None = None) -> list[RecordingPreview]:
    playable = settings.guest_preview_count if playable is None else playable
    recordings = (
        db.query(LectureRecording)
        .filter(
            LectureRecording.course_id == course_id,
            LectureRecording.is_published.is_(True),
        )
        .order_by(LectureRecording.created_at.asc(), LectureRecording.id.asc())
        .all()
    )

    out = []
    for position, rec in enumerate(recordings):
        locked = position >= playable
        out.append(RecordingPreview(
            id=rec.id,
            title=rec.title,
            description=rec.description,
            duration_seconds=rec.duration_seconds,
            thumbnail_url=rec.thumbnail_url,
            created_at=rec.created_at,
            locked=locked,
            video_url=None if locked else rec.video_url,
        ))
    return out
