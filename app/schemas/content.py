from pydantic import BaseModel

from app.schemas.common import UtcDatetime

class RecordingOut(BaseModel):
    id: int
    title: str
    description: str | None
    duration_seconds: int | None
    thumbnail_url: str | None
    created_at: UtcDatetime
    locked: bool
    video_url: str | None  # None when locked

    class Config:
        from_attributes = True

class LiveClassOut(BaseModel):
    id: int
    title: str
    scheduled_at: UtcDatetime
    duration_minutes: int
    meeting_url: str

    class Config:
        from_attributes = True

class CourseRecordingsOut(BaseModel):
    course_id: int
    via: str
    recordings: list[RecordingOut]
