from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizbank.core.database import store_errors
from quizbank.models.orm import QuizSubmission


class AttemptSequencer:
    """
    Next attempt number for a (user, set) pair.

    The read is not locked. Concurrent writers are resolved by the unique
    (user_id, set_id, attempt_no) constraint and the grader's retry.
    """

    def next_attempt_no(self, db: Session, user_id: int, set_id: int) -> int:
        with store_errors("attempt sequencing"):
            current = db.scalar(
                select(func.coalesce(func.max(QuizSubmission.attempt_no), 0)).where(
                    QuizSubmission.user_id == user_id, QuizSubmission.set_id == set_id
                )
            )
        return int(current or 0) + 1
