from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quizbank.api.deps import get_grader, get_history, get_reviewer
from quizbank.core.auth import TokenData, require_roles
from quizbank.core.database import get_db
from quizbank.models.schemas import Page, QuizReview, QuizSubmit, QuizSummary, SubmissionFilters, SubmitResult
from quizbank.services.grading import QuizGrader
from quizbank.services.review import ReviewAssembler
from quizbank.services.submissions import SubmissionHistory

router = APIRouter()


@router.post("/submit/{set_id}", response_model=SubmitResult, status_code=201)
def submit_quiz(
    set_id: int,
    payload: QuizSubmit,
    user: TokenData = Depends(require_roles("student", "admin")),
    db: Session = Depends(get_db),
    grader: QuizGrader = Depends(get_grader),
):
    return grader.submit_quiz(db, set_id, user.user_id, payload.answers)


@router.get("/result", response_model=QuizReview)
def last_result(
    user: TokenData = Depends(require_roles("student", "admin")),
    db: Session = Depends(get_db),
    reviewer: ReviewAssembler = Depends(get_reviewer),
):
    return reviewer.get_last_review(db, user.user_id)


@router.get("/submissions", response_model=Page)
def list_submissions(
    lesson_id: Optional[int] = None,
    class_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: TokenData = Depends(require_roles("student", "admin")),
    db: Session = Depends(get_db),
    history: SubmissionHistory = Depends(get_history),
):
    filters = SubmissionFilters(lesson_id=lesson_id, class_id=class_id, page=page, limit=limit)
    return history.list_for_user(db, user.user_id, filters)


@router.get("/submissions/{submission_id}", response_model=QuizReview, dependencies=[Depends(require_roles("student", "admin"))])
def submission_detail(
    submission_id: int,
    db: Session = Depends(get_db),
    reviewer: ReviewAssembler = Depends(get_reviewer),
):
    return reviewer.get_review_by_submission(db, submission_id)


@router.get("/summary", response_model=QuizSummary)
def summary(
    user: TokenData = Depends(require_roles("student", "admin")),
    db: Session = Depends(get_db),
    history: SubmissionHistory = Depends(get_history),
):
    return history.summary(db, user.user_id)
