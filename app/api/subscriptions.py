from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_admin
from app.api.deps_access import get_course_or_404
from app.db.session import get_db
from app.models.user import User
from app.schemas.subscriptions import ActivatePurchaseIn, ActivatePurchaseOut, MySubscriptionOut, SubscriptionOut
from app.services import subscriptions
from app.utils.dt import as_utc_aware

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

# Called once a payment has been verified: records the subscription and the paid enrollment.
# A second approval for the same user+course surfaces as 409 (enrollment_conflict)
@router.post("/activate", response_model=ActivatePurchaseOut, status_code=201)
def activate_purchase(
    payload: ActivatePurchaseIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if not db.get(User, payload.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    get_course_or_404(db, payload.course_id)

    sub, enrollment = subscriptions.activate_purchase(db, payload.user_id, payload.course_id, payload.plan_id)
    return ActivatePurchaseOut(
        subscription=SubscriptionOut.model_validate(sub),
        enrollment_id=enrollment.id,
        enrollment_type=enrollment.type,
    )

# Obtain current user's subscriptions
@router.get("/me", response_model=list[MySubscriptionOut])
def my_subscriptions(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    out = []
    for sub, plan in subscriptions.list_user_subscriptions(db, user.id):
        out.append(MySubscriptionOut(
            id=sub.id,
            course_id=sub.course_id,
            plan_name=plan.name,
            plan_type=plan.type,
            status=sub.status,
            expires_at=as_utc_aware(sub.expires_at),
            is_active_now=subscriptions.is_covering(sub),
        ))
    return out
