"""
FastAPI middleware for rate limiting selected endpoints.
"""
import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from typing import Callable, Optional, Awaitable, TypedDict

from .limiter import RateLimiter

logger = logging.getLogger(__name__)


class EndpointLimitConfig(TypedDict):
    """Configuration for per-endpoint rate limits."""

    limit: int
    window: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply rate limits to the configured endpoints.

    Only paths listed in `endpoint_limits` (optionally narrowed to certain
    methods) are limited; everything else passes straight through.

    Example:
        ```python
        app.add_middleware(
            RateLimitMiddleware,
            limiter=RateLimiter(InMemoryStorage(), 100, 900),
            endpoint_limits={"/login": {"limit": 100, "window": 900}},
        )
        ```
    """

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        endpoint_limits: dict[str, EndpointLimitConfig],
        methods: Optional[list[str]] = None,
        identifier_resolver: Optional[Callable[[Request], str]] = None,
        add_headers: bool = True,
    ):
        """
        Initialize rate limit middleware.

        Args:
            app: FastAPI application
            limiter: RateLimiter instance
            endpoint_limits: Path -> EndpointLimitConfig for limited endpoints
            methods: HTTP methods to limit (default: POST only)
            identifier_resolver: Function to extract identifier from request
                                (default: uses client IP)
            add_headers: Whether to add rate limit headers to responses
        """
        super().__init__(app)
        self.limiter = limiter
        self.endpoint_limits = endpoint_limits
        self.methods = set(methods or ["POST"])
        self.identifier_resolver = identifier_resolver or get_client_identifier
        self.add_headers = add_headers

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        endpoint_config = self.endpoint_limits.get(path)
        if endpoint_config is None or request.method not in self.methods:
            return await call_next(request)

        identifier = f"{self.identifier_resolver(request)}::endpoint::{path}"
        allowed, metadata = self.limiter.check(
            identifier,
            limit=endpoint_config["limit"],
            window=endpoint_config["window"],
        )

        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"path": path, "user_identifier": identifier},
            )
            return self._rate_limit_response(metadata)

        response = await call_next(request)

        if self.add_headers:
            self._add_rate_limit_headers(response, metadata)

        return response

    def _rate_limit_response(self, metadata: dict) -> JSONResponse:
        """
        Create rate limit exceeded response.

        Args:
            metadata: Rate limit metadata

        Returns:
            JSONResponse with 429 status
        """
        response = JSONResponse(
            status_code=429,
            content={
                "detail": "Too many login attempts. Please try again later.",
                "retry_after": metadata.get("retry_after", 0),
            },
        )
        self._add_rate_limit_headers(response, metadata)

        retry_after = metadata.get("retry_after", 0)
        if retry_after > 0:
            response.headers["Retry-After"] = str(retry_after)

        return response

    def _add_rate_limit_headers(self, response: Response, metadata: dict) -> None:
        response.headers["X-RateLimit-Limit"] = str(metadata.get("limit", 0))
        response.headers["X-RateLimit-Remaining"] = str(metadata.get("remaining", 0))
        response.headers["X-RateLimit-Reset"] = str(metadata.get("reset_at", 0))


def get_client_identifier(request: Request) -> str:
    """
    Identify the caller by the direct connection IP.

    Forwarded-for headers are client-controlled and deliberately ignored.

    Returns:
        Identifier in the form "ip:{address}"
    """
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"
