"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizdesk import observability
from quizdesk.api.v1.api import api_router
from quizdesk.core.attempt_store import AttemptStore, create_storage
from quizdesk.core.auth.credentials import CredentialTable
from quizdesk.core.config import settings
from quizdesk.core.exceptions import LoadError, QuizError
from quizdesk.core.logging_config import setup_logging
from quizdesk.core.result_store import ResultStore
from quizdesk.middleware import (
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from quizdesk.ratelimit import RateLimiter, RateLimitMiddleware, Storage

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes Sentry
    - On shutdown: closes storage connection pools and flushes Sentry
    """
    observability.init_sentry(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.ENV,
        release=settings.APP_VERSION,
    )
    logger.info(
        f"{settings.APP_NAME} started with {len(app.state.credentials)} credential "
        f"entries and {app.state.attempt_store.storage_type} attempt storage"
    )

    yield

    app.state.attempt_store.close()
    logger.info("Closed attempt storage connection pool")

    observability.shutdown()


# OpenAPI tags metadata
tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoint for monitoring application status",
    },
    {
        "name": "auth",
        "description": "Login page, password login and logout",
    },
    {
        "name": "test",
        "description": "Test selection, questions, answers and results",
    },
]


def _serialize_validation_errors(exc: RequestValidationError) -> list:
    # Input values omitted
    return [
        {
            "loc": list(error.get("loc", [])),
            "msg": str(error.get("msg", "")),
            "type": str(error.get("type", "")),
        }
        for error in exc.errors()
    ]


def create_application(
    storage: Optional[Storage] = None,
    credentials: Optional[CredentialTable] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        storage: Key-value backend for attempts and login limits
                 (defaults to the one selected by ATTEMPT_STORAGE)
        credentials: Credential table (defaults to CREDENTIALS / CREDENTIALS_FILE)
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**QuizDesk** - password-protected multiple-choice tests loaded "
            "from spreadsheets.\n\n"
            "Log in at `/`, pick a test, answer question by question and view "
            "the score at `/result`."
        ),
        openapi_tags=tags_metadata,
    )

    if storage is None:
        storage = create_storage()
    app.state.attempt_store = AttemptStore(storage)
    app.state.result_store = ResultStore(storage)
    app.state.credentials = (
        credentials if credentials is not None else CredentialTable.from_settings()
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Configure Request Logging
    app.add_middleware(RequestLoggingMiddleware)

    # Configure Security Headers
    # HSTS is enabled only in production to avoid issues with local development
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts_enabled=settings.is_production,
        hsts_max_age=31536000,  # 1 year
        csp_enabled=True,
    )

    # Configure Request Size Limits
    app.add_middleware(
        RequestSizeLimitMiddleware, max_body_size=settings.MAX_REQUEST_BODY_BYTES
    )

    # Configure Login Rate Limiting
    if settings.LOGIN_RATE_LIMIT_ENABLED:
        limiter = RateLimiter(
            storage=storage,
            default_limit=settings.LOGIN_RATE_LIMIT,
            default_window=settings.LOGIN_RATE_WINDOW,
        )
        app.add_middleware(
            RateLimitMiddleware,
            limiter=limiter,
            endpoint_limits={
                "/login": {
                    "limit": settings.LOGIN_RATE_LIMIT,
                    "window": settings.LOGIN_RATE_WINDOW,
                },
            },
            methods=["POST"],
        )

    app.include_router(api_router)

    @app.exception_handler(QuizError)
    async def quiz_exception_handler(request: Request, exc: QuizError):
        """
        Convert domain errors to JSON responses.

        Load failures are logged with their cause and sent to Sentry.
        """
        if isinstance(exc, LoadError):
            cause = exc.original_error or exc
            logger.error(
                f"{exc.message} ({cause.__class__.__name__}: {cause})",
                extra={"path": str(request.url.path)},
            )
            observability.capture_error(
                cause,
                context={"path": str(request.url.path), "method": request.method},
                tags={"error_type": "LoadError"},
                user_id=getattr(request.state, "user_id", None),
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handle HTTP exceptions raised by the request helpers and routing.
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors as 400 Bad Request.
        """
        errors = _serialize_validation_errors(exc)
        logger.info(
            f"Request validation failed: {errors}",
            extra={"path": str(request.url.path)},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id (UUID) for each exception so a specific
        failure can be found in the logs. The error_id is included in the
        response body and logged with the full exception.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )

        observability.capture_error(
            exc,
            context={
                "path": str(request.url.path),
                "method": request.method,
                "error_id": error_id,
            },
            tags={"error_type": exc.__class__.__name__},
            user_id=getattr(request.state, "user_id", None),
        )

        # Return error response with tracking ID (don't leak internal details)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error_id": error_id,
            },
        )

    return app


app = create_application()
