from pydantic import BaseModel

from app.schemas.common import UtcDatetime

class SubscriptionSummary(BaseModel):
    id: int
    plan_name: str
    plan_type: str
    expires_at: UtcDatetime

class TrialSummary(BaseModel):
    id: int
    resource_type: str
    expires_at: UtcDatetime

class AccessOut(BaseModel):
    granted: bool
    via: str  # subscription / demo / none
    reason: str | None  # no_access / trial_available / expired / storage_unavailable
    detail: str
    resource_type: str | None
    subscription: SubscriptionSummary | None = None
    trial: TrialSummary | None = None
