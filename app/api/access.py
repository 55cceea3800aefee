from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.api.deps_access import get_course_or_404
from app.db.session import get_db
from app.models.enums import ResourceType
from app.models.user import User
from app.schemas.access import AccessOut
from app.services.resolver import resolve_access

router = APIRouter(prefix="/access", tags=["access"])

# Report the verdict without enforcing it, so the UI can pick the next step
# (start a trial, view plans, renew)
@router.get("/check", response_model=AccessOut)
def check_access(
    course_id: int,
    resource_type: ResourceType,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    get_course_or_404(db, course_id)
    verdict = resolve_access(db, user.id, course_id, resource_type)
    return AccessOut(**verdict.to_dict())
