"""FastAPI application factory for Feedback-Engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from feedback_engine.common.config import get_settings
from feedback_engine.common.exceptions import FeedbackError, RateLimitedError
from feedback_engine.common.logging import setup_logging
from feedback_engine.common.schemas import ErrorResponse, HealthResponse, ReadyResponse

logger = logging.getLogger(__name__)


def _rate_limit_headers(request: Request) -> dict[str, str]:
    """Headers from a rate-limit decision already made for this request."""
    return dict(getattr(request.state, "rate_limit_headers", None) or {})


def _error_response(request: Request, exc: FeedbackError) -> JSONResponse:
    body = ErrorResponse(error=exc.code, message=exc.message or None)
    if isinstance(exc, RateLimitedError):
        body.retry_after_seconds = exc.retry_after_seconds
    headers = _rate_limit_headers(request)
    headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers or None,
    )


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from feedback_engine.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        if not db.persistent:
            logger.warning("FEEDBACK_DB_URL not set; using in-memory storage")
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    @app.exception_handler(FeedbackError)
    async def feedback_error_handler(request: Request, exc: FeedbackError):
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": jsonable_encoder(exc.errors())},
            headers=_rate_limit_headers(request) or None,
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error"},
            headers=_rate_limit_headers(request) or None,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    @app.get("/ready", response_model=ReadyResponse, response_model_exclude_none=True)
    async def ready():
        from feedback_engine.deps import get_db
        db = get_db()
        if not db.persistent:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "reason": "FEEDBACK_DB_URL not configured"},
            )
        try:
            ok = await db.ping()
        except (SQLAlchemyError, OSError):
            logger.exception("Readiness check failed")
            ok = False
        if not ok:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "reason": "Database connection failed"},
            )
        return ReadyResponse(status="ready")

    # Mount routers
    from feedback_engine.feedback.router import router as feedback_router
    from feedback_engine.games.router import router as games_router

    prefix = settings.api_prefix
    app.include_router(feedback_router, prefix=prefix, tags=["feedback"])
    app.include_router(games_router, prefix=prefix, tags=["games"])

    return app
