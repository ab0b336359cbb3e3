from fastapi import Request

from quizbank.services.grading import QuizGrader
from quizbank.services.review import ReviewAssembler
from quizbank.services.submissions import SubmissionHistory


def get_grader(request: Request) -> QuizGrader:
    return request.app.state.grader


def get_reviewer(request: Request) -> ReviewAssembler:
    return request.app.state.reviewer


def get_history(request: Request) -> SubmissionHistory:
    return request.app.state.history
