import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from quizbank.core.errors import AttemptConflict, StoreUnavailable
from quizbank.models.orm import ATTEMPT_CONSTRAINT, QuizSubmission

logger = logging.getLogger(__name__)


def is_attempt_collision(e: IntegrityError) -> bool:
    """True when the violated constraint is the per-user attempt number one."""
    diag = getattr(e.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name == ATTEMPT_CONSTRAINT
    # sqlite reports the columns, not the constraint name
    message = str(e.orig)
    return ATTEMPT_CONSTRAINT in message or "quiz_submissions.attempt_no" in message


class SubmissionPersister:
    """Writes one immutable graded submission per call."""

    def persist(
        self,
        db: Session,
        user_id: int,
        set_id: int,
        answer: str,
        correct: int,
        grade: int,
        attempt_no: int,
    ) -> QuizSubmission:
        row = QuizSubmission(
            user_id=user_id,
            set_id=set_id,
            answer=answer,
            correct=correct,
            grade=grade,
            attempt_no=attempt_no,
        )
        try:
            db.add(row)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if not is_attempt_collision(e):
                logger.error(f"Integrity error inserting quiz submission for user {user_id} set {set_id}: {e.orig}")
                raise StoreUnavailable(
                    "failed to record quiz submission", {"user_id": user_id, "set_id": set_id}
                ) from e
            raise AttemptConflict(
                "attempt number already taken",
                {"user_id": user_id, "set_id": set_id, "attempt_no": attempt_no},
            ) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to insert quiz submission for user {user_id} set {set_id}: {e}")
            raise StoreUnavailable("failed to record quiz submission") from e
        return row
