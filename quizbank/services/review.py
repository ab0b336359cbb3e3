"""
Per-question review of a past submission.

The stored answer string is walked in lock-step with the set's questions
ordered by number. A submission shorter than the question list simply ends
the walk early.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from quizbank.core.cache import CacheAsideStore, CacheTier
from quizbank.core.database import store_errors
from quizbank.core.errors import SubmissionNotFound
from quizbank.models.orm import Answer, Question, QuizSubmission
from quizbank.models.schemas import QuestionReview, QuizReview
from quizbank.services.answer_key import AnswerKeyResolver

logger = logging.getLogger(__name__)

REVIEW_BANK_KIND = "quiz:review_bank"


class ReviewAssembler:
    def __init__(self, cache: CacheAsideStore, resolver: AnswerKeyResolver):
        self.cache = cache
        self.resolver = resolver

    def get_last_review(self, db: Session, user_id: int) -> QuizReview:
        with store_errors("last submission lookup"):
            submission = db.scalar(
                select(QuizSubmission)
                .where(QuizSubmission.user_id == user_id)
                .order_by(QuizSubmission.submitted_at.desc(), QuizSubmission.id.desc())
                .limit(1)
            )
        if submission is None:
            raise SubmissionNotFound("no quiz submission found for user", {"user_id": user_id})
        return self.assemble(db, submission)

    def get_review_by_submission(self, db: Session, submission_id: int) -> QuizReview:
        with store_errors("submission lookup"):
            submission = db.get(QuizSubmission, submission_id)
        if submission is None:
            raise SubmissionNotFound("quiz submission not found", {"submission_id": submission_id})
        return self.assemble(db, submission)

    def assemble(self, db: Session, submission: QuizSubmission) -> QuizReview:
        total = self.resolver.resolve(db, submission.set_id).total_questions
        bank = self.question_bank(db, submission.set_id)

        reviews: List[QuestionReview] = []
        for question, user_code in zip(bank, submission.answer):
            actual = _correct_answer(question) or {"code": "", "content": ""}
            reviews.append(
                QuestionReview(
                    number=question["number"],
                    user_code=user_code,
                    actual_code=actual["code"],
                    user_content=_content_for(question, user_code),
                    actual_content=actual["content"],
                    question_content=question["content"],
                    explanation=question["explanation"],
                    format=question["format"],
                    is_correct=user_code == actual["code"],
                )
            )

        return QuizReview(
            id=submission.id,
            set_id=submission.set_id,
            grade=submission.grade,
            correct=submission.correct,
            wrong=total - submission.correct,
            attempt_no=submission.attempt_no,
            submitted_at=submission.submitted_at,
            answers=reviews,
        )

    def question_bank(self, db: Session, set_id: int) -> List[Dict[str, Any]]:
        """Questions of a set ordered by number, each with all its answers."""
        key = self.cache.make_key(REVIEW_BANK_KIND, set_id=set_id)
        return self.cache.get_or_load(key, lambda: self._load_bank(db, set_id), CacheTier.STANDARD)

    def invalidate(self, set_id: int) -> None:
        self.cache.delete(self.cache.make_key(REVIEW_BANK_KIND, set_id=set_id))

    def _load_bank(self, db: Session, set_id: int) -> List[Dict[str, Any]]:
        with store_errors("review question lookup"):
            questions = db.scalars(
                select(Question).where(Question.set_id == set_id).order_by(Question.number)
            ).all()
            ids = [q.id for q in questions]
            answers = (
                db.scalars(select(Answer).where(Answer.question_id.in_(ids)).order_by(Answer.code)).all()
                if ids
                else []
            )

        by_question: Dict[int, List[Dict[str, Any]]] = {}
        for a in answers:
            by_question.setdefault(a.question_id, []).append(
                {"code": a.code, "content": a.content or "", "is_answer": bool(a.is_answer)}
            )
        return [
            {
                "id": q.id,
                "number": q.number,
                "content": q.content or "",
                "explanation": q.explanation or "",
                "format": q.format or "",
                "answers": by_question.get(q.id, []),
            }
            for q in questions
        ]


def _correct_answer(question: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return next((a for a in question["answers"] if a["is_answer"]), None)


def _content_for(question: Dict[str, Any], code: str) -> str:
    return next((a["content"] for a in question["answers"] if a["code"] == code), "")
