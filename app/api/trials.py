from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.api.deps_access import get_course_or_404, get_resource_or_404
from app.db.session import get_db
from app.models.enums import ResourceType
from app.models.user import User
from app.schemas.trials import EligibilityOut, TrialOut, TrialRequestIn, TrialUsageIn, TrialUsageOut, TrialUsageSummaryOut
from app.services import trials

router = APIRouter(prefix="/trials", tags=["trials"])

@router.get("/eligibility", response_model=EligibilityOut)
def trial_eligibility(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return EligibilityOut(eligible=trials.is_eligible(db, user.id))

# Claim the account's one lifetime trial.
# NotEligible / DuplicatePending are turned into 403 / 409 by the app's AccessError handler
@router.post("", response_model=TrialOut, status_code=201)
def start_trial(
    payload: TrialRequestIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    get_course_or_404(db, payload.course_id)
    return trials.grant(db, user.id, payload.course_id, payload.resource_type)

@router.get("/me", response_model=list[TrialOut])
def my_trials(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return trials.list_user_grants(db, user.id)

# Record a recording or live class opened under the caller's running trial.
# Tracking the same resource again is a no-op; without a live grant it is 403 (no_active_trial)
@router.post("/usage", response_model=TrialUsageOut)
def track_trial_usage(
    payload: TrialUsageIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    get_course_or_404(db, payload.course_id)
    get_resource_or_404(db, payload.course_id, payload.resource_type, payload.resource_id)
    usage, created = trials.track_usage(
        db, user.id, payload.course_id, payload.resource_type, payload.resource_id,
    )
    out = TrialUsageOut.model_validate(usage)
    out.already_tracked = not created
    return out

@router.get("/usage", response_model=TrialUsageSummaryOut)
def trial_usage(
    course_id: int,
    resource_type: ResourceType = ResourceType.lecture_recording,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ids = [u.resource_id for u in trials.list_usage(db, user.id, course_id, resource_type)]
    return TrialUsageSummaryOut(
        course_id=course_id,
        resource_type=resource_type.value,
        resource_ids=ids,
        count=len(ids),
        has_used_trial=bool(ids),
    )
