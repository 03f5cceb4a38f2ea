"""
Question loading from test spreadsheets.

Each test is one workbook named ``questions<N>.xlsx`` in QUESTIONS_DIR. The
sheet ``Questions`` (or ``Sheet1``) holds one question per row after a header
row, with columns by position:

    1       question text
    2-7     answer options (blank cells ignored)
    8-10    correct answers (blank cells ignored)
    11      type: "single" or "multiple" (default "multiple")
    12      points (default 0)
"""
import logging
import math
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from quizdesk.core.config import settings
from quizdesk.core.error_responses import ErrorMessages
from quizdesk.core.exceptions import LoadError, NotFoundError
from quizdesk.schemas.questions import (
    MAX_CORRECT_ANSWERS,
    MAX_OPTIONS,
    Question,
    QuestionType,
    TestInfo,
)

logger = logging.getLogger(__name__)

SHEET_NAMES = ("Questions", "Sheet1")

# Zero-based column positions
TEXT_COLUMN = 0
OPTION_COLUMNS = range(1, 1 + MAX_OPTIONS)
CORRECT_COLUMNS = range(7, 7 + MAX_CORRECT_ANSWERS)
TYPE_COLUMN = 10
POINTS_COLUMN = 11
COLUMN_COUNT = 12

TEST_FILE_PATTERN = re.compile(r"^questions(\d+)\.xlsx$", re.IGNORECASE)
PICTURE_PATTERN = re.compile(r"^\s*picture\s+(\d+)", re.IGNORECASE)

# resolved path -> (mtime, questions)
_question_cache: Dict[str, Tuple[float, List[Question]]] = {}
_cache_lock = threading.Lock()


def _cell_text(value: Any) -> str:
    """Stringify a cell, mapping empty cells to "" and 3.0 to "3"."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if value is pd.NaT:
        return ""
    return str(value).strip()


def _parse_points(value: Any) -> int:
    text = _cell_text(value)
    if not text:
        return 0
    try:
        points = int(float(text))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, points)


def _parse_type(value: Any) -> QuestionType:
    text = _cell_text(value).lower()
    try:
        return QuestionType(text)
    except ValueError:
        return QuestionType.MULTIPLE


def image_for_text(text: str, prefix: Optional[str] = None) -> Optional[str]:
    """
    Derive the image reference for a question.

    Questions whose text starts with "Picture <N>" show the picture exported
    for that number; all other questions have no image.

    Args:
        text: Question text
        prefix: URL prefix for images (defaults to IMAGES_URL_PREFIX)

    Returns:
        Image path such as "/images/Picture 3.png", or None
    """
    match = PICTURE_PATTERN.match(text)
    if not match:
        return None
    prefix = settings.IMAGES_URL_PREFIX if prefix is None else prefix
    return f"{prefix.rstrip('/')}/Picture {int(match.group(1))}.png"


def parse_row(values: List[Any]) -> Optional[Question]:
    """
    Convert one spreadsheet row into a Question.

    Returns:
        The Question, or None if the row has no question text
    """
    values = list(values) + [None] * (COLUMN_COUNT - len(values))
    text = _cell_text(values[TEXT_COLUMN])
    if not text:
        return None

    options = [_cell_text(values[i]) for i in OPTION_COLUMNS]
    correct = [_cell_text(values[i]) for i in CORRECT_COLUMNS]

    return Question(
        text=text,
        options=[option for option in options if option],
        correct_answers=[answer for answer in correct if answer],
        type=_parse_type(values[TYPE_COLUMN]),
        points=_parse_points(values[POINTS_COLUMN]),
        image=image_for_text(text),
    )


def _read_rows(path: Path) -> List[List[Any]]:
    try:
        with pd.ExcelFile(path, engine="openpyxl") as workbook:
            sheet_name = next(
                (name for name in SHEET_NAMES if name in workbook.sheet_names), None
            )
            if sheet_name is None:
                logger.error(f"Sheet 'Questions' or 'Sheet1' not found in {path}")
                raise LoadError(ErrorMessages.QUESTIONS_UNREADABLE)
            frame = workbook.parse(sheet_name, header=None, dtype=object)
    except LoadError:
        raise
    except Exception as e:
        logger.error(f"Failed to read spreadsheet {path}: {e}")
        raise LoadError(ErrorMessages.QUESTIONS_UNREADABLE, original_error=e)

    return frame.values.tolist()


def load_questions(path: str | Path) -> List[Question]:
    """
    Load all questions from a test spreadsheet.

    Results are cached per file and reused until the file's modification time
    changes.

    Args:
        path: Path to the workbook

    Returns:
        Questions in row order (header row skipped, rows without text skipped)

    Raises:
        LoadError: If the file or sheet is missing or unreadable
    """
    path = Path(path)
    if not path.is_file():
        logger.error(f"Spreadsheet not found: {path}")
        raise LoadError(ErrorMessages.QUESTIONS_UNREADABLE)

    key = str(path.resolve())
    mtime = path.stat().st_mtime
    with _cache_lock:
        cached = _question_cache.get(key)
    if cached is not None and cached[0] == mtime:
        logger.debug(f"Questions for {path.name} served from cache")
        return list(cached[1])

    rows = _read_rows(path)
    questions = [
        question
        for question in (parse_row(row) for row in rows[1:])
        if question is not None
    ]

    with _cache_lock:
        _question_cache[key] = (mtime, questions)
    logger.info(f"Loaded {len(questions)} questions from {path.name}")
    return list(questions)


def clear_question_cache() -> None:
    """Drop all cached question lists."""
    with _cache_lock:
        _question_cache.clear()


def discover_tests(
    directory: str | Path | None = None,
    time_limit_seconds: Optional[int] = None,
) -> Dict[str, TestInfo]:
    """
    Find the tests available in the questions directory.

    Args:
        directory: Directory to scan (defaults to QUESTIONS_DIR)
        time_limit_seconds: Per-attempt limit (defaults to TEST_TIME_LIMIT_SECONDS)

    Returns:
        Mapping of test number to TestInfo, ordered by test number
    """
    directory = Path(directory or settings.QUESTIONS_DIR)
    if time_limit_seconds is None:
        time_limit_seconds = settings.TEST_TIME_LIMIT_SECONDS

    if not directory.is_dir():
        logger.warning(f"Questions directory not found: {directory}")
        return {}

    found: List[Tuple[int, Path]] = []
    for entry in directory.iterdir():
        match = TEST_FILE_PATTERN.match(entry.name)
        if match and entry.is_file():
            found.append((int(match.group(1)), entry))

    tests: Dict[str, TestInfo] = {}
    for number, entry in sorted(found):
        test_id = str(number)
        tests[test_id] = TestInfo(
            test_id=test_id,
            name=f"Test {test_id}",
            questions_file=str(entry),
            time_limit_seconds=time_limit_seconds,
        )
    return tests


def get_test(test_id: str, directory: str | Path | None = None) -> TestInfo:
    """
    Look up one test in the catalog.

    Raises:
        NotFoundError: If no spreadsheet exists for the test number
    """
    key = test_id.strip()
    if key.isdigit():
        key = str(int(key))
    test = discover_tests(directory).get(key)
    if test is None:
        raise NotFoundError(ErrorMessages.test_not_found(test_id))
    return test


def load_test_questions(
    test_id: str, directory: str | Path | None = None
) -> Tuple[TestInfo, List[Question]]:
    """
    Resolve a test number and load its questions.

    Raises:
        NotFoundError: If the test does not exist
        LoadError: If the spreadsheet cannot be read or holds no questions
    """
    test = get_test(test_id, directory)
    questions = load_questions(test.questions_file)
    if not questions:
        raise LoadError(ErrorMessages.questions_unavailable(test.test_id))
    return test, questions
