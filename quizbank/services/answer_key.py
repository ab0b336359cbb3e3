"""
Canonical answer key resolution for a question set.

The canonical key is the concatenation of each question's correct answer
code in ascending question-number order. Questions with no flagged correct
answer contribute nothing, so the key can be shorter than the question
count; scoring decides what to do about that.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizbank.core.cache import CacheAsideStore, CacheTier
from quizbank.core.database import store_errors
from quizbank.core.errors import SetNotFound
from quizbank.models.orm import Answer, Question, QuestionSet

logger = logging.getLogger(__name__)

SET_KIND = "quiz:set"
ANSWER_KEY_KIND = "quiz:answer_key"


@dataclass(frozen=True)
class AnswerKey:
    set_id: int
    total_questions: int
    key: str

    @property
    def is_complete(self) -> bool:
        return len(self.key) == self.total_questions


class AnswerKeyResolver:
    def __init__(self, cache: CacheAsideStore):
        self.cache = cache

    def get_set(self, db: Session, set_id: int) -> Dict[str, Any]:
        """Set metadata, raising SetNotFound for unknown ids and non-quiz sets."""
        key = self.cache.make_key(SET_KIND, set_id=set_id)
        data = self.cache.get_or_load(key, lambda: self._load_set(db, set_id), CacheTier.LONG)
        if data is None:
            raise SetNotFound(f"question set {set_id} not found", {"set_id": set_id})
        return data

    def resolve(self, db: Session, set_id: int) -> AnswerKey:
        self.get_set(db, set_id)
        key = self.cache.make_key(ANSWER_KEY_KIND, set_id=set_id)
        data = self.cache.get_or_load(key, lambda: self._load_key(db, set_id), CacheTier.FAST)
        return AnswerKey(set_id=set_id, total_questions=int(data["total"]), key=data["key"])

    def invalidate(self, set_id: int) -> None:
        self.cache.delete(
            self.cache.make_key(SET_KIND, set_id=set_id),
            self.cache.make_key(ANSWER_KEY_KIND, set_id=set_id),
        )

    def _load_set(self, db: Session, set_id: int) -> Optional[Dict[str, Any]]:
        with store_errors("set lookup"):
            qs = db.get(QuestionSet, set_id)
        if qs is None or not qs.is_quiz:
            return None
        return {"id": qs.id, "title": qs.title, "lesson_id": qs.lesson_id, "class_id": qs.class_id}

    def _load_key(self, db: Session, set_id: int) -> Dict[str, Any]:
        with store_errors("answer key resolution"):
            total = db.scalar(select(func.count(Question.id)).where(Question.set_id == set_id))
            codes = db.scalars(
                select(Answer.code)
                .join(Question, Answer.question_id == Question.id)
                .where(Question.set_id == set_id, Answer.is_answer.is_(True))
                .order_by(Question.number, Answer.code)
            ).all()
        key = "".join(c for c in codes if c)
        if len(key) != (total or 0):
            logger.debug(f"Answer key for set {set_id} has {len(key)} codes for {total} questions")
        return {"total": int(total or 0), "key": key}
