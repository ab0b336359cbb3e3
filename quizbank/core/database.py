import logging
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizbank.core.config import Settings
from quizbank.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        # in-memory sqlite must share one connection across threads
        return create_engine(
            url,
            future=True,
            echo=settings.DATABASE_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        future=True,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
        pool_size=settings.DATABASE_POOL_SIZE,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, future=True)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors(operation: str):
    """Surface any SQLAlchemy failure inside the block as StoreUnavailable."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store error during {operation}: {e}")
        raise StoreUnavailable(f"data store unavailable during {operation}") from e
