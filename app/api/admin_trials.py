from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.api.deps_access import get_course_or_404
from app.db.session import get_db
from app.models.user import User
from app.schemas.trials import AdminTrialIn, TrialListOut, TrialOut, TrialStatsOut
from app.services import trials

router = APIRouter(prefix="/admin/trials", tags=["admin"])

@router.post("", response_model=TrialOut, status_code=201)
def grant_trial(
    payload: AdminTrialIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if not db.get(User, payload.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    get_course_or_404(db, payload.course_id)
    return trials.admin_grant(db, admin.id, payload.user_id, payload.course_id, payload.resource_type)

@router.get("", response_model=TrialListOut)
def list_trials(
    course_id: int | None = None,
    status: str = Query("all", pattern="^(active|expired|all)$"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    grants = trials.list_grants(db, course_id=course_id, status=status)
    return TrialListOut(
        trials=[TrialOut.model_validate(g) for g in grants],
        stats=TrialStatsOut(**trials.grant_stats(grants)),
    )

@router.delete("/{grant_id}", status_code=204)
def revoke_trial(grant_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    trials.revoke(db, grant_id)
