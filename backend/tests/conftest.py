"""
Pytest configuration and shared fixtures for testing.
"""
import logging
import os
import sys
from pathlib import Path

# Settings are read at import time; SECRET_KEY has no default.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-identity-tokens")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("ATTEMPT_STORAGE", "memory")
os.environ.setdefault("SENTRY_DSN", "")

# Make the backend directory importable when pytest runs without an install
backend_root = Path(__file__).parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

from contextlib import asynccontextmanager  # noqa: E402
from typing import Any, Dict, List, Optional  # noqa: E402

import pandas as pd  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from quizdesk.core.auth.credentials import CredentialTable  # noqa: E402
from quizdesk.core.auth.security import hash_password  # noqa: E402
from quizdesk.core.config import settings  # noqa: E402
from quizdesk.core.question_loader import clear_question_cache  # noqa: E402
from quizdesk.ratelimit.storage import InMemoryStorage  # noqa: E402

HEADER_ROW = (
    ["Question"]
    + [f"Option {i}" for i in range(1, 7)]
    + [f"Correct {i}" for i in range(1, 4)]
    + ["Type", "Points"]
)

PASSWORDS = {
    "student1": "secret-one",
    "student2": "secret-two",
}


def question_row(
    text: str,
    options: List[Any],
    correct: List[Any],
    question_type: Optional[str] = "multiple",
    points: Any = 1,
) -> List[Any]:
    """Build one spreadsheet row in column order, padding blank cells."""
    options = list(options) + [None] * (6 - len(options))
    correct = list(correct) + [None] * (3 - len(correct))
    return [text] + options + correct + [question_type, points]


def write_workbook(
    path: Path, rows: List[List[Any]], sheet_name: str = "Questions"
) -> Path:
    """Write rows (header first) to an .xlsx file."""
    pd.DataFrame(rows).to_excel(
        path, sheet_name=sheet_name, header=False, index=False, engine="openpyxl"
    )
    return path


TEST1_ROWS = [
    HEADER_ROW,
    question_row("What is 2 + 2?", ["3", "4", "5"], ["4"], "multiple", 2),
    question_row("Pick the primes", ["2", "4", "5", "9"], ["2", "5"], "multiple", 5),
    question_row("Picture 3 Which shape is shown?", ["Circle", "Square"], ["Circle"], "single", 1),
]

TEST2_ROWS = [
    HEADER_ROW,
    question_row("Capital of France?", ["Paris", "Rome"], ["Paris"], "multiple", 3),
]


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests (skips Sentry initialization)."""
    yield


@pytest.fixture(autouse=True)
def _reset_question_cache():
    clear_question_cache()
    yield
    clear_question_cache()


@pytest.fixture(autouse=True)
def _propagate_app_logs(monkeypatch):
    """Let caplog see records from the non-propagating quizdesk logger."""
    monkeypatch.setattr(logging.getLogger("quizdesk"), "propagate", True)


@pytest.fixture
def questions_dir(tmp_path, monkeypatch) -> Path:
    """Questions directory with two tests, installed as QUESTIONS_DIR."""
    directory = tmp_path / "data"
    directory.mkdir()
    write_workbook(directory / "questions1.xlsx", TEST1_ROWS)
    write_workbook(directory / "questions2.xlsx", TEST2_ROWS)
    monkeypatch.setattr(settings, "QUESTIONS_DIR", str(directory))
    return directory


@pytest.fixture(scope="session")
def password_hashes() -> Dict[str, str]:
    """Low-cost bcrypt hashes so tests stay fast."""
    return {user: hash_password(pw, rounds=4) for user, pw in PASSWORDS.items()}


@pytest.fixture
def credentials(password_hashes) -> CredentialTable:
    return CredentialTable(password_hashes)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


def create_test_application(storage=None, credentials=None):
    """Create the production app with the lifespan disabled."""
    from quizdesk.main import create_application

    test_app = create_application(
        storage=storage if storage is not None else InMemoryStorage(),
        credentials=credentials if credentials is not None else CredentialTable({}),
    )
    test_app.router.lifespan_context = _test_lifespan
    return test_app


@pytest.fixture
def app(questions_dir, storage, credentials):
    return create_test_application(storage=storage, credentials=credentials)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def login(client: TestClient, user: str = "student1"):
    return client.post("/login", json={"password": PASSWORDS[user]})


@pytest.fixture
def auth_client(client) -> TestClient:
    """Client carrying a valid identity cookie for student1."""
    response = login(client)
    assert response.status_code == 200
    return client
