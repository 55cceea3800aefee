from pydantic import BaseModel

from app.schemas.common import UtcDatetime

class ActivatePurchaseIn(BaseModel):
    user_id: int
    course_id: int
    plan_id: int

class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    course_id: int
    plan_id: int
    status: str
    starts_at: UtcDatetime
    expires_at: UtcDatetime

    class Config:
        from_attributes = True

class ActivatePurchaseOut(BaseModel):
    subscription: SubscriptionOut
    enrollment_id: int
    enrollment_type: str

class MySubscriptionOut(BaseModel):
    id: int
    course_id: int
    plan_name: str
    plan_type: str
    status: str
    expires_at: UtcDatetime
    is_active_now: bool
