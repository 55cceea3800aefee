from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.db.session import get_db
from app.models.enums import PlanType
from app.models.user import User
from app.schemas.plans import PlanCreateIn, PlanOut, PlanUpdateIn
from app.services import plans

router = APIRouter(prefix="/plans", tags=["plans"])

# Display available subscription plans, cheapest first
@router.get("", response_model=list[PlanOut])
def list_plans(type: PlanType | None = None, db: Session = Depends(get_db)):
    return plans.list_plans(db, active_only=True, plan_type=type.value if type else None)

# Admin: every plan, including deactivated ones
@router.get("/all", response_model=list[PlanOut])
def list_all_plans(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return plans.list_plans(db, active_only=False)

@router.post("", response_model=PlanOut, status_code=201)
def create_plan(payload: PlanCreateIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    data = payload.model_dump(exclude_none=True)
    data["type"] = payload.type.value
    return plans.create_plan(db, data)

@router.patch("/{plan_id}", response_model=PlanOut)
def update_plan(
    plan_id: int,
    payload: PlanUpdateIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    changes = payload.model_dump(exclude_unset=True)
    if payload.type is not None:
        changes["type"] = payload.type.value
    return plans.update_plan(db, plan_id, changes)

# Plans are deactivated rather than deleted; subscriptions keep pointing at them
@router.delete("/{plan_id}", response_model=PlanOut)
def deactivate_plan(plan_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return plans.deactivate_plan(db, plan_id)
