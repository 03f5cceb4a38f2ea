"""
Response security headers and request body limits for the quiz pages.
"""
import logging
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

STATIC_HEADERS: Dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
}

# Question pages carry inline style and the timer/focus script.
PAGE_CSP = (
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline'",
    "style-src 'self' 'unsafe-inline'",
    "img-src 'self' data: https:",
    "connect-src 'self'",
    "object-src 'none'",
    "base-uri 'self'",
    "form-action 'self'",
    "frame-ancestors 'none'",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the static headers, the page CSP and (in production) HSTS."""

    def __init__(
        self,
        app: ASGIApp,
        hsts_enabled: bool = True,
        hsts_max_age: int = 31536000,
        csp_enabled: bool = True,
    ):
        super().__init__(app)
        self.hsts_enabled = hsts_enabled
        self.hsts_max_age = hsts_max_age
        self.csp_enabled = csp_enabled

        directives = list(PAGE_CSP)
        if hsts_enabled:
            directives.append("upgrade-insecure-requests")
        self.csp = "; ".join(directives)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update(STATIC_HEADERS)
        if self.csp_enabled:
            response.headers["Content-Security-Policy"] = self.csp
        if self.hsts_enabled:
            response.headers[
                "Strict-Transport-Security"
            ] = f"max-age={self.hsts_max_age}; includeSubDomains"
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects bodies declared larger than `max_body_size` bytes.

    Logins and answer submissions are small JSON documents, so the declared
    Content-Length is enough to decide.
    """

    def __init__(self, app: ASGIApp, max_body_size: int = 64 * 1024):
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            if not content_length.isdigit():
                return JSONResponse(
                    status_code=400,
                    content={"detail": "Invalid Content-Length header"},
                )
            if int(content_length) > self.max_body_size:
                logger.warning(
                    f"Rejected {request.method} {request.url.path}: "
                    f"body of {content_length} bytes exceeds {self.max_body_size}"
                )
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large"},
                )

        return await call_next(request)
