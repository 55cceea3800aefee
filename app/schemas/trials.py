from pydantic import BaseModel

from app.models.enums import ResourceType
from app.schemas.common import UtcDatetime

class TrialRequestIn(BaseModel):
    course_id: int
    resource_type: ResourceType

class AdminTrialIn(TrialRequestIn):
    user_id: int

class TrialOut(BaseModel):
    id: int
    user_id: int
    course_id: int
    resource_type: str
    used_at: UtcDatetime
    expires_at: UtcDatetime
    granted_by: int | None

    class Config:
        from_attributes = True

class EligibilityOut(BaseModel):
    eligible: bool

class TrialStatsOut(BaseModel):
    total: int
    active: int
    expired: int
    by_type: dict[str, int]

class TrialListOut(BaseModel):
    trials: list[TrialOut]
    stats: TrialStatsOut

class TrialUsageIn(TrialRequestIn):
    resource_id: int

class TrialUsageOut(BaseModel):
    id: int
    grant_id: int
    course_id: int
    resource_type: str
    resource_id: int
    used_at: UtcDatetime
    expires_at: UtcDatetime
    already_tracked: bool = False

    class Config:
        from_attributes = True

class TrialUsageSummaryOut(BaseModel):
    course_id: int
    resource_type: str
    resource_ids: list[int]
    count: int
    has_used_trial: bool
