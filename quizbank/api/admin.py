from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from quizbank.api.deps import get_history
from quizbank.core.auth import require_roles
from quizbank.core.database import get_db
from quizbank.models.schemas import Page, SubmissionFilters
from quizbank.services.submissions import SubmissionHistory

router = APIRouter()


@router.get("/submissions", response_model=Page, dependencies=[Depends(require_roles("admin"))])
def list_submissions_admin(
    lesson_id: Optional[int] = None,
    class_id: Optional[int] = None,
    user_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    history: SubmissionHistory = Depends(get_history),
):
    filters = SubmissionFilters(lesson_id=lesson_id, class_id=class_id, user_id=user_id, page=page, limit=limit)
    return history.list_admin(db, filters)


@router.post("/sets/{set_id}/invalidate", dependencies=[Depends(require_roles("admin"))])
def invalidate_set(set_id: int, request: Request):
    """Drop cached answer key, set metadata and review bank after an authoring edit."""
    request.app.state.resolver.invalidate(set_id)
    request.app.state.reviewer.invalidate(set_id)
    return {"ok": True, "set_id": set_id}
