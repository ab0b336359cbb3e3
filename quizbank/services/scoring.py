import enum
import logging
from dataclasses import dataclass
from typing import Optional

from quizbank.core.errors import EmptyQuestionSet, IncompleteAnswerKey

logger = logging.getLogger(__name__)


class ScoringPolicy(str, enum.Enum):
    LENIENT = "lenient"
    STRICT = "strict"


@dataclass(frozen=True)
class Score:
    correct_count: int
    grade: int


def score_submission(
    submitted: str,
    canonical: str,
    total_questions: int,
    policy: ScoringPolicy = ScoringPolicy.LENIENT,
    set_id: Optional[int] = None,
) -> Score:
    """
    Grade ``submitted`` against ``canonical`` position by position.

    Characters compare ordinally (case-sensitive). The grade is
    ``floor(correct * 100 / total_questions)``. Under the lenient policy a
    canonical key shorter than the question count is tolerated and the
    comparison stops at the shorter string; the strict policy rejects it.
    """
    if total_questions <= 0:
        raise EmptyQuestionSet("no questions found in this set", {"set_id": set_id})

    if len(canonical) != total_questions:
        if ScoringPolicy(policy) is ScoringPolicy.STRICT:
            raise IncompleteAnswerKey(
                "answer key does not cover every question",
                {"set_id": set_id, "total_questions": total_questions, "key_length": len(canonical)},
            )
        logger.warning(
            f"Scoring set {set_id} with an answer key of {len(canonical)} codes for {total_questions} questions"
        )

    correct = sum(1 for mine, theirs in zip(submitted, canonical) if mine == theirs)
    return Score(correct_count=correct, grade=(correct * 100) // total_questions)
