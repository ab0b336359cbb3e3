"""
Submission history listings and per-user summary, read through the cache.
"""
import logging
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizbank.core.cache import CacheAsideStore, CacheTier
from quizbank.core.database import store_errors
from quizbank.models.orm import QuestionSet, QuizSubmission
from quizbank.models.schemas import Page, QuizSummary, SubmissionFilters, SubmissionRow

logger = logging.getLogger(__name__)

ADMIN_LIST_KIND = "quiz:submissions:admin"


def user_list_kind(user_id: int) -> str:
    return f"quiz:submissions:{user_id}"


def user_generation_kind(user_id: int) -> str:
    return f"quiz:submissions_gen:{user_id}"


def user_summary_kind(user_id: int) -> str:
    return f"quiz:summary:{user_id}"


class SubmissionHistory:
    def __init__(self, cache: CacheAsideStore):
        self.cache = cache

    def list_for_user(self, db: Session, user_id: int, filters: SubmissionFilters) -> Page:
        filters = filters.model_copy(update={"user_id": user_id})
        generation = self.cache.generation(self.cache.make_key(user_generation_kind(user_id)))
        key = self.cache.make_key(user_list_kind(user_id), gen=generation, **filters.cache_params())
        data = self.cache.get_or_load(key, lambda: self._load_page(db, filters), CacheTier.INSTANT)
        return Page.model_validate(data)

    def list_admin(self, db: Session, filters: SubmissionFilters) -> Page:
        key = self.cache.make_key(ADMIN_LIST_KIND, **filters.cache_params())
        data = self.cache.get_or_load(key, lambda: self._load_page(db, filters), CacheTier.INSTANT)
        return Page.model_validate(data)

    def summary(self, db: Session, user_id: int) -> QuizSummary:
        key = self.cache.make_key(user_summary_kind(user_id))
        data = self.cache.get_or_load(key, lambda: self._load_summary(db, user_id), CacheTier.BLAZING)
        return QuizSummary.model_validate(data)

    def invalidate_user(self, user_id: int) -> None:
        self.cache.bump(self.cache.make_key(user_generation_kind(user_id)))
        self.cache.delete(self.cache.make_key(user_summary_kind(user_id)))

    def _load_page(self, db: Session, filters: SubmissionFilters) -> Dict[str, Any]:
        conditions = []
        if filters.user_id is not None:
            conditions.append(QuizSubmission.user_id == filters.user_id)
        if filters.lesson_id is not None:
            conditions.append(QuestionSet.lesson_id == filters.lesson_id)
        if filters.class_id is not None:
            conditions.append(QuestionSet.class_id == filters.class_id)

        base = select(QuizSubmission, QuestionSet).join(QuestionSet, QuizSubmission.set_id == QuestionSet.id).where(*conditions)
        count_stmt = (
            select(func.count(QuizSubmission.id))
            .join(QuestionSet, QuizSubmission.set_id == QuestionSet.id)
            .where(*conditions)
        )
        with store_errors("submission listing"):
            total = db.scalar(count_stmt) or 0
            rows = db.execute(
                base.order_by(QuizSubmission.submitted_at.desc(), QuizSubmission.id.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            ).all()

        data = [
            SubmissionRow(
                id=s.id,
                set_id=s.set_id,
                user_id=s.user_id,
                correct=s.correct,
                grade=s.grade,
                attempt_no=s.attempt_no,
                lesson_id=qs.lesson_id,
                class_id=qs.class_id,
                submitted_at=s.submitted_at,
            )
            for s, qs in rows
        ]
        page = Page(total=total, page=filters.page, limit=filters.limit, data=data)
        return page.model_dump(mode="json")

    def _load_summary(self, db: Session, user_id: int) -> Dict[str, Any]:
        with store_errors("quiz summary"):
            count, avg = db.execute(
                select(func.count(QuizSubmission.id), func.coalesce(func.avg(QuizSubmission.grade), 0)).where(
                    QuizSubmission.user_id == user_id
                )
            ).one()
        return {"quiz_count": int(count), "average_grade": float(avg)}
