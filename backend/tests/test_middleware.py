"""
Tests for security headers, request size limits and request logging.
"""
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from quizdesk.core.auth.security import create_identity_token
from quizdesk.core.config import settings
from quizdesk.middleware import (
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from tests.conftest import create_test_application


def _echo_app(*middlewares) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.post("/echo")
    async def echo(body: dict):
        return body

    for middleware, options in middlewares:
        app.add_middleware(middleware, **options)
    return app


class TestSecurityHeadersMiddleware:
    """Tests for SecurityHeadersMiddleware."""

    def test_standard_headers(self):
        client = TestClient(_echo_app((SecurityHeadersMiddleware, {"hsts_enabled": False})))
        response = client.get("/ping")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "camera=()" in response.headers["Permissions-Policy"]

    def test_csp_allows_inline_page_assets(self):
        client = TestClient(_echo_app((SecurityHeadersMiddleware, {"hsts_enabled": False})))
        csp = client.get("/ping").headers["Content-Security-Policy"]

        assert "script-src 'self' 'unsafe-inline'" in csp
        assert "style-src 'self' 'unsafe-inline'" in csp
        assert "frame-ancestors 'none'" in csp
        assert "upgrade-insecure-requests" not in csp

    def test_hsts_only_when_enabled(self):
        without = TestClient(_echo_app((SecurityHeadersMiddleware, {"hsts_enabled": False})))
        with_hsts = TestClient(
            _echo_app((SecurityHeadersMiddleware, {"hsts_enabled": True, "hsts_max_age": 60}))
        )

        assert "Strict-Transport-Security" not in without.get("/ping").headers
        response = with_hsts.get("/ping")
        assert response.headers["Strict-Transport-Security"] == "max-age=60; includeSubDomains"
        assert "upgrade-insecure-requests" in response.headers["Content-Security-Policy"]

    def test_csp_can_be_disabled(self):
        client = TestClient(
            _echo_app((SecurityHeadersMiddleware, {"hsts_enabled": False, "csp_enabled": False}))
        )
        assert "Content-Security-Policy" not in client.get("/ping").headers


class TestRequestSizeLimitMiddleware:
    """Tests for RequestSizeLimitMiddleware."""

    def setup_method(self):
        self.client = TestClient(
            _echo_app((RequestSizeLimitMiddleware, {"max_body_size": 32}))
        )

    def test_small_body_passes(self):
        response = self.client.post("/echo", json={"a": 1})
        assert response.status_code == 200
        assert response.json() == {"a": 1}

    def test_large_body_is_rejected(self):
        response = self.client.post("/echo", json={"a": "x" * 100})
        assert response.status_code == 413
        assert response.json()["detail"] == "Request body too large"

    def test_rejection_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="quizdesk.middleware.security"):
            self.client.post("/echo", json={"a": "x" * 100})

        assert any("exceeds 32" in r.getMessage() for r in caplog.records)

    def test_invalid_content_length(self):
        response = self.client.post(
            "/echo",
            content=b"{}",
            headers={"Content-Length": "abc", "Content-Type": "application/json"},
        )
        assert response.status_code == 400


class TestRequestLoggingMiddleware:
    """Tests for RequestLoggingMiddleware."""

    def setup_method(self):
        self.client = TestClient(_echo_app((RequestLoggingMiddleware, {})))

    def test_request_id_is_generated(self):
        response = self.client.get("/ping")
        assert len(response.headers["X-Request-ID"]) == 36

    def test_request_id_is_propagated(self):
        response = self.client.get("/ping", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_logs_completed_request(self, caplog):
        with caplog.at_level(logging.INFO, logger="quizdesk.middleware.request_logging"):
            self.client.get("/ping")

        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        assert len(completed) == 1
        assert completed[0].path == "/ping"
        assert completed[0].status_code == 200
        assert completed[0].user_identifier == "anonymous"

    def test_identifies_signed_in_user(self, caplog):
        self.client.cookies.set(
            settings.IDENTITY_COOKIE_NAME, create_identity_token("student1")
        )
        with caplog.at_level(logging.INFO, logger="quizdesk.middleware.request_logging"):
            self.client.get("/ping")

        assert any(
            getattr(r, "user_identifier", None) == "user:student1" for r in caplog.records
        )

    def test_client_errors_log_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="quizdesk.middleware.request_logging"):
            self.client.get("/missing")

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert warnings and warnings[0].status_code == 404

    def test_body_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="quizdesk.middleware.request_logging"):
            self.client.post("/echo", json={"index": 1})

        assert any("Request body" in r.getMessage() for r in caplog.records)


class TestApplicationMiddlewareStack:
    """The assembled app carries every middleware."""

    def test_app_responses_carry_headers(self, questions_dir):
        client = TestClient(create_test_application())
        response = client.get("/")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Request-ID" in response.headers

    def test_login_body_is_never_logged(self, questions_dir, caplog):
        client = TestClient(create_test_application())
        with caplog.at_level(logging.DEBUG, logger="quizdesk.middleware.request_logging"):
            client.post("/login", json={"password": "do-not-log-me"})

        assert all("do-not-log-me" not in r.getMessage() for r in caplog.records)

    def test_oversized_login_is_rejected(self, questions_dir):
        client = TestClient(create_test_application())
        response = client.post("/login", content=b"x" * (settings.MAX_REQUEST_BODY_BYTES + 1))
        assert response.status_code == 413
