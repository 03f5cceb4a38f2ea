"""
Tests for exception handlers in main.py.
"""
import pytest
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizdesk.core.exceptions import (
    AuthError,
    ConflictError,
    NoActiveAttemptError,
    NotFoundError,
    QuizError,
    ValidationError,
)
from tests.conftest import create_test_application


@pytest.fixture
def error_client(questions_dir):
    app = create_test_application()
    errors = {
        "validation": ValidationError("Bad field."),
        "auth": AuthError("Invalid password."),
        "forbidden": AuthError("Not authenticated.", status_code=403),
        "not-found": NotFoundError("Missing."),
        "no-attempt": NoActiveAttemptError("Test not started."),
        "conflict": ConflictError("Stale."),
    }

    @app.get("/raise/{name}")
    def raise_error(name: str):
        raise errors[name]

    @app.get("/crash")
    def crash():
        raise RuntimeError("database password is hunter2")

    return TestClient(app, raise_server_exceptions=False)


class TestHandlersRegistered:
    def test_handlers_exist(self):
        from quizdesk.main import app

        for exc_class in (QuizError, StarletteHTTPException, RequestValidationError, Exception):
            assert exc_class in app.exception_handlers


class TestQuizErrorHandler:
    @pytest.mark.parametrize(
        "name,status_code,detail",
        [
            ("validation", 400, "Bad field."),
            ("auth", 401, "Invalid password."),
            ("forbidden", 403, "Not authenticated."),
            ("not-found", 404, "Missing."),
            ("no-attempt", 400, "Test not started."),
            ("conflict", 409, "Stale."),
        ],
    )
    def test_status_and_detail(self, error_client, name, status_code, detail):
        response = error_client.get(f"/raise/{name}")
        assert response.status_code == status_code
        assert response.json() == {"detail": detail}


class TestGenericHandler:
    def test_internal_details_are_hidden(self, error_client):
        response = error_client.get("/crash")

        assert response.status_code == 500
        data = response.json()
        assert data["detail"] == "Internal server error"
        assert len(data["error_id"]) == 36
        assert "hunter2" not in response.text


class TestValidationHandler:
    def test_validation_errors_omit_input(self, client):
        response = client.post("/login", json={"password": ["secret-one"]})

        assert response.status_code == 400
        errors = response.json()["detail"]
        assert set(errors[0]) == {"loc", "msg", "type"}
        assert "secret-one" not in response.text

    def test_unknown_route_is_404(self, client):
        response = client.get("/no-such-page")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}
