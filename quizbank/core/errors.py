"""
Domain errors raised by the grading and review services.

Every error carries the HTTP status the API layer renders it with, a stable
``error_code`` for clients and a ``context`` dict with whatever the caller
needs to correct and retry the request.
"""
from typing import Any, Dict, Optional


class QuizError(Exception):
    status_code: int = 500
    error_code: str = "quiz_error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "type": self.error_code,
            "status_code": self.status_code,
            "details": self.context,
        }


class InvalidSubmission(QuizError):
    status_code = 400
    error_code = "invalid_submission"


class EmptyQuestionSet(QuizError):
    status_code = 400
    error_code = "empty_question_set"


class SetNotFound(QuizError):
    status_code = 404
    error_code = "set_not_found"


class SubmissionNotFound(QuizError):
    status_code = 404
    error_code = "submission_not_found"


class IncompleteAnswerKey(QuizError):
    """The set has questions without a flagged correct answer."""

    status_code = 409
    error_code = "incomplete_answer_key"


class AttemptConflict(QuizError):
    """Another submission took the same attempt number first."""

    status_code = 409
    error_code = "attempt_conflict"


class StoreUnavailable(QuizError):
    status_code = 503
    error_code = "store_unavailable"
