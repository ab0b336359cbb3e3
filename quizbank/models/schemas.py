from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, constr


class AnswerIn(BaseModel):
    number: int
    answer: constr(min_length=1, max_length=1)


class QuizSubmit(BaseModel):
    answers: List[AnswerIn] = Field(default_factory=list)


class SubmitResult(BaseModel):
    submission_id: int
    attempt_no: int
    correct: int
    grade: int


class QuestionReview(BaseModel):
    number: int
    user_code: str
    actual_code: str
    user_content: str = ""
    actual_content: str = ""
    question_content: str = ""
    explanation: str = ""
    format: str = ""
    is_correct: bool


class QuizReview(BaseModel):
    id: int
    set_id: int
    grade: int
    correct: int
    wrong: int
    attempt_no: int
    submitted_at: datetime
    answers: List[QuestionReview] = Field(default_factory=list)


class SubmissionFilters(BaseModel):
    """Recognised filters for submission listings."""

    lesson_id: Optional[int] = None
    class_id: Optional[int] = None
    user_id: Optional[int] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    def cache_params(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class SubmissionRow(BaseModel):
    id: int
    set_id: int
    user_id: int
    correct: int
    grade: int
    attempt_no: int
    lesson_id: Optional[int] = None
    class_id: Optional[int] = None
    submitted_at: datetime


class Page(BaseModel):
    total: int
    page: int
    limit: int
    data: List[SubmissionRow] = Field(default_factory=list)


class QuizSummary(BaseModel):
    quiz_count: int
    average_grade: float
