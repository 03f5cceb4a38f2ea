"""
Request/response logging middleware for tracking quiz traffic.
"""
import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable

from quizdesk.core.auth.security import user_id_from_token
from quizdesk.core.config import settings
from quizdesk.core.logging_config import request_id_context

logger = logging.getLogger(__name__)

# Longest request body excerpt written to debug logs
MAX_LOGGED_BODY_BYTES = 512


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log incoming requests and outgoing responses.

    Logs:
    - Request method and path
    - Response status code and duration
    - Request body at debug level (POST only, never for credential endpoints)
    - User identifier (from the identity cookie if present)
    """

    # Endpoints to skip logging request body (credentials)
    SKIP_BODY_LOGGING_PATHS = [
        "/login",
    ]

    def __init__(self, app, log_request_body: bool = True):
        """
        Initialize request logging middleware.

        Args:
            app: FastAPI application
            log_request_body: Whether to log request bodies at debug level
        """
        super().__init__(app)
        self.log_request_body = log_request_body

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and log details.

        Args:
            request: Incoming request
            call_next: Next middleware/endpoint in chain

        Returns:
            Response from the endpoint
        """
        # Generate or extract request ID for correlation
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_context.set(request_id)

        start_time = time.time()

        user_id = user_id_from_token(request.cookies.get(settings.IDENTITY_COOKIE_NAME))
        user_identifier = f"user:{user_id}" if user_id else "anonymous"

        method = request.method
        path = str(request.url.path)
        client_host = request.client.host if request.client else "unknown"

        if (
            self.log_request_body
            and method == "POST"
            and path not in self.SKIP_BODY_LOGGING_PATHS
            and logger.isEnabledFor(logging.DEBUG)
        ):
            body = await request.body()
            if body:
                logger.debug(
                    f"Request body: {body[:MAX_LOGGED_BODY_BYTES]!r}",
                    extra={"method": method, "path": path},
                )

        logger.info(
            "Incoming request",
            extra={
                "method": method,
                "path": path,
                "client_host": client_host,
                "user_identifier": user_identifier,
            },
        )

        response = await call_next(request)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        status_code = response.status_code

        # Add request_id header to response for client-side correlation
        response.headers["X-Request-ID"] = request_id

        extra_fields = {
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_host": client_host,
            "user_identifier": user_identifier,
        }

        if status_code >= 500:
            logger.error("Server error response", extra=extra_fields)
        elif status_code >= 400:
            logger.warning("Client error response", extra=extra_fields)
        else:
            logger.info("Request completed", extra=extra_fields)

        return response
