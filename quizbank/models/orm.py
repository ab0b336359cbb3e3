from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


ATTEMPT_CONSTRAINT = "uq_quiz_submissions_attempt"


class Base(DeclarativeBase): pass


class QuestionSet(Base):
    __tablename__ = "sets"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String, default="")
    lesson_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    class_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    is_quiz: Mapped[bool] = mapped_column(Boolean, default=True)


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (UniqueConstraint("set_id", "number", name="uq_questions_set_number"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    set_id: Mapped[int] = mapped_column(Integer, ForeignKey("sets.id"), index=True)
    number: Mapped[int] = mapped_column(Integer)
    format: Mapped[str] = mapped_column(String, default="mc")
    content: Mapped[str] = mapped_column(Text, default="")
    explanation: Mapped[str] = mapped_column(Text, default="")


class Answer(Base):
    __tablename__ = "answers"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question_id: Mapped[int] = mapped_column(Integer, ForeignKey("questions.id"), index=True)
    code: Mapped[str] = mapped_column(String(1))
    content: Mapped[str] = mapped_column(Text, default="")
    is_answer: Mapped[bool] = mapped_column(Boolean, default=False)


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"
    __table_args__ = (UniqueConstraint("user_id", "set_id", "attempt_no", name=ATTEMPT_CONSTRAINT),)
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    set_id: Mapped[int] = mapped_column(Integer, ForeignKey("sets.id"), index=True)
    answer: Mapped[str] = mapped_column(Text)
    correct: Mapped[int] = mapped_column(Integer)
    grade: Mapped[int] = mapped_column(Integer)
    attempt_no: Mapped[int] = mapped_column(Integer)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
