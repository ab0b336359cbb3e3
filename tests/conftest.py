import fnmatch

import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizbank.core.auth import create_token
from quizbank.core.cache import CacheAsideStore
from quizbank.core.config import Settings
from quizbank.main import create_app
from quizbank.models.orm import Answer, Base, Question, QuestionSet
from quizbank.models.schemas import AnswerIn
from quizbank.services.answer_key import AnswerKeyResolver
from quizbank.services.attempts import AttemptSequencer
from quizbank.services.grading import QuizGrader
from quizbank.services.persister import SubmissionPersister
from quizbank.services.review import ReviewAssembler
from quizbank.services.submissions import SubmissionHistory

SECRET = "test-secret"


class DictRedis:
    """Dict-backed double for the redis commands the cache store issues."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.fail = False
        self.gets = 0

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("redis is down")

    def get(self, key):
        self._check()
        self.gets += 1
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, *keys):
        self._check()
        removed = 0
        for k in keys:
            if k in self.data:
                del self.data[k]
                self.ttls.pop(k, None)
                removed += 1
        return removed

    def incr(self, key):
        self._check()
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def expire(self, key, seconds):
        self._check()
        if key not in self.data:
            return False
        self.ttls[key] = seconds
        return True

    def scan_iter(self, match=None, count=None):
        self._check()
        return [k for k in list(self.data) if match is None or fnmatch.fnmatchcase(k, match)]

    def close(self):
        pass


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="testing",
        DATABASE_URL="sqlite://",
        APP_SECRET=SECRET,
        LOG_LEVEL="INFO",
    )


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return DictRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheAsideStore(fake_redis, namespace="test")


@pytest.fixture
def resolver(cache):
    return AnswerKeyResolver(cache)


@pytest.fixture
def history(cache):
    return SubmissionHistory(cache)


@pytest.fixture
def grader(resolver, history):
    return QuizGrader(resolver, AttemptSequencer(), SubmissionPersister(), history)


@pytest.fixture
def reviewer(cache, resolver):
    return ReviewAssembler(cache, resolver)


@pytest.fixture
def make_set(db):
    """
    Seed a set from a key string: one question per character, choices
    a..d, the character marks the correct choice ("-" for none).
    """

    def _make(key, lesson_id=None, class_id=None, choices="abcd", numbers=None, is_quiz=True):
        qs = QuestionSet(title=f"set {key}", lesson_id=lesson_id, class_id=class_id, is_quiz=is_quiz)
        db.add(qs)
        db.flush()
        numbers = numbers or list(range(1, len(key) + 1))
        for number, correct in zip(numbers, key):
            q = Question(
                set_id=qs.id,
                number=number,
                content=f"Question {number}",
                explanation=f"Because of rule {number}",
            )
            db.add(q)
            db.flush()
            for code in choices:
                db.add(Answer(question_id=q.id, code=code, content=f"Option {code} of {number}", is_answer=code == correct))
        db.commit()
        return qs

    return _make


def answers_from(text, numbers=None):
    numbers = numbers or list(range(1, len(text) + 1))
    return [AnswerIn(number=n, answer=c) for n, c in zip(numbers, text)]


@pytest.fixture
def app(settings, engine, fake_redis):
    return create_app(settings, engine=engine, redis_client=fake_redis)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    def _headers(user_id=1, roles=("student",)):
        return {"Authorization": f"Bearer {create_token(SECRET, user_id, list(roles))}"}

    return _headers
