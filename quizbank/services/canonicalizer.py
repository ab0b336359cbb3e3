import logging
from typing import Iterable

from quizbank.core.errors import InvalidSubmission
from quizbank.models.schemas import AnswerIn

logger = logging.getLogger(__name__)


def canonicalize(answers: Iterable[AnswerIn], total_questions: int) -> str:
    """
    Serialize submitted answers into a position-ordered answer string.

    The submission must carry exactly one answer per question; partial
    submissions are rejected rather than partially graded. Numbers are only
    used for ordering, they are not checked against the set's questions.
    """
    answers = list(answers)
    if len(answers) != total_questions:
        logger.info(f"Rejected submission with {len(answers)} answers for {total_questions} questions")
        raise InvalidSubmission(
            "invalid number of answers provided",
            {"expected": total_questions, "received": len(answers)},
        )
    ordered = sorted(answers, key=lambda a: a.number)
    return "".join(a.answer for a in ordered)
