"""
Quiz submission pipeline.

One grading call runs strictly in order: answer key resolution, submission
canonicalization, attempt sequencing, scoring, persistence. Any failure
aborts before the insert, so no partial submission row is ever written.
"""
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from quizbank.core.errors import AttemptConflict, EmptyQuestionSet
from quizbank.models.schemas import AnswerIn, SubmitResult
from quizbank.services.answer_key import AnswerKeyResolver
from quizbank.services.attempts import AttemptSequencer
from quizbank.services.canonicalizer import canonicalize
from quizbank.services.persister import SubmissionPersister
from quizbank.services.scoring import ScoringPolicy, score_submission
from quizbank.services.submissions import SubmissionHistory

logger = logging.getLogger(__name__)


class QuizGrader:
    def __init__(
        self,
        resolver: AnswerKeyResolver,
        sequencer: AttemptSequencer,
        persister: SubmissionPersister,
        history: SubmissionHistory,
        policy: ScoringPolicy = ScoringPolicy.LENIENT,
        max_retries: int = 3,
    ):
        self.resolver = resolver
        self.sequencer = sequencer
        self.persister = persister
        self.history = history
        self.policy = ScoringPolicy(policy)
        self.max_retries = max(0, max_retries)

    def submit_quiz(self, db: Session, set_id: int, user_id: int, answers: Iterable[AnswerIn]) -> SubmitResult:
        answer_key = self.resolver.resolve(db, set_id)
        if answer_key.total_questions == 0:
            raise EmptyQuestionSet("no questions found in this set", {"set_id": set_id})

        submitted = canonicalize(answers, answer_key.total_questions)

        for retry in range(self.max_retries + 1):
            attempt_no = self.sequencer.next_attempt_no(db, user_id, set_id)
            score = score_submission(
                submitted, answer_key.key, answer_key.total_questions, self.policy, set_id=set_id
            )
            try:
                row = self.persister.persist(
                    db,
                    user_id=user_id,
                    set_id=set_id,
                    answer=submitted,
                    correct=score.correct_count,
                    grade=score.grade,
                    attempt_no=attempt_no,
                )
                break
            except AttemptConflict as e:
                logger.warning(
                    f"Attempt {attempt_no} for user {user_id} set {set_id} already taken "
                    f"(attempt {retry + 1}/{self.max_retries + 1})"
                )
                if retry >= self.max_retries:
                    e.context["retries"] = self.max_retries
                    raise

        self.history.invalidate_user(user_id)
        logger.info(
            f"Graded submission {row.id}: user {user_id} set {set_id} attempt {row.attempt_no} grade {row.grade}"
        )
        return SubmitResult(submission_id=row.id, attempt_no=row.attempt_no, correct=row.correct, grade=row.grade)
