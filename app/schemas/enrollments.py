from pydantic import BaseModel

from app.models.enums import EnrollmentAction, EnrollmentType
from app.schemas.common import UtcDatetime
from app.schemas.subscriptions import SubscriptionOut

class EnrollmentOut(BaseModel):
    id: int
    user_id: int
    course_id: int
    type: EnrollmentType
    subscription_id: int | None
    enrolled_at: UtcDatetime

    class Config:
        from_attributes = True

class AdminEnrollmentOut(EnrollmentOut):
    subscription: SubscriptionOut | None = None
    plan_name: str | None = None
    plan_type: str | None = None

class ManualEnrollmentIn(BaseModel):
    user_id: int
    course_id: int

class EnrollmentChangeIn(BaseModel):
    action: EnrollmentAction
    plan_id: int
