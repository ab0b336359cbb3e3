"""
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizbank.api.admin import router as admin_router
from quizbank.api.auth import router as auth_router
from quizbank.api.quizzes import router as quizzes_router
from quizbank.core.cache import CacheAsideStore, build_redis_client
from quizbank.core.config import Settings, get_settings
from quizbank.core.database import build_engine, build_session_factory
from quizbank.core.errors import QuizError
from quizbank.core.logging import configure_logging
from quizbank.models.orm import Base
from quizbank.services.answer_key import AnswerKeyResolver
from quizbank.services.attempts import AttemptSequencer
from quizbank.services.grading import QuizGrader
from quizbank.services.persister import SubmissionPersister
from quizbank.services.review import ReviewAssembler
from quizbank.services.scoring import ScoringPolicy
from quizbank.services.submissions import SubmissionHistory

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    redis_client: Optional[redis.Redis] = None,
) -> FastAPI:
    """
    Build the application with every component constructed explicitly.

    ``engine`` and ``redis_client`` may be injected; otherwise they are
    built from settings.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    engine = engine if engine is not None else build_engine(settings)
    if redis_client is None:
        redis_client = build_redis_client(settings)

    cache = CacheAsideStore.from_settings(settings, redis_client)
    resolver = AnswerKeyResolver(cache)
    history = SubmissionHistory(cache)
    grader = QuizGrader(
        resolver,
        AttemptSequencer(),
        SubmissionPersister(),
        history,
        policy=ScoringPolicy(settings.SCORING_POLICY),
        max_retries=settings.ATTEMPT_MAX_RETRIES,
    )
    reviewer = ReviewAssembler(cache, resolver)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")
        if settings.AUTO_CREATE_TABLES:
            Base.metadata.create_all(engine)
            logger.info("Database tables ensured")
        yield
        logger.info(f"Shutting down {settings.APP_NAME}...")
        if redis_client is not None:
            redis_client.close()
        engine.dispose()
        logger.info("Shutdown complete")

    app = FastAPI(title=settings.APP_NAME, description=settings.APP_DESCRIPTION, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.cache = cache
    app.state.resolver = resolver
    app.state.history = history
    app.state.grader = grader
    app.state.reviewer = reviewer

    app.add_middleware(CORSMiddleware, allow_origins=settings.cors_origins(), allow_credentials=True, allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(QuizError)
    async def quiz_error_handler(request: Request, exc: QuizError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"message": exc.detail, "type": "http_error", "status_code": exc.status_code}},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "message": "Validation error",
                    "type": "validation_error",
                    "status_code": 422,
                    "details": jsonable_encoder(exc.errors()),
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        message = "An internal error occurred" if settings.is_production() else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"message": message, "type": "internal_error", "status_code": 500}},
        )

    prefix = settings.API_PREFIX
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(quizzes_router, prefix=f"{prefix}/quizzes", tags=["quizzes"])
    app.include_router(admin_router, prefix=f"{prefix}/admin", tags=["admin"])

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("quizbank.main:create_app", factory=True, host="0.0.0.0", port=8000)
