"""
Finished test results.

Each consumed attempt leaves one TestResultRecord in an append-only list in
the same backend as the attempts. Records do not expire.
"""
import logging
from typing import List, Optional

from quizdesk.core.error_responses import ErrorMessages
from quizdesk.core.exceptions import LoadError
from quizdesk.ratelimit.storage import Storage, StorageError
from quizdesk.schemas.responses import ScoreResult
from quizdesk.schemas.test_sessions import TestAttempt, TestResultRecord

logger = logging.getLogger(__name__)

RESULTS_KEY = "test_results"


def build_record(attempt: TestAttempt, result: ScoreResult) -> TestResultRecord:
    """Summarize a completed attempt and its score."""
    completed_at = attempt.completed_at or attempt.started_at
    return TestResultRecord(
        user_id=attempt.user_id,
        test_id=attempt.test_id,
        test_name=attempt.test_name,
        score=result.score,
        total=result.total,
        per_question=list(result.per_question),
        duration_seconds=attempt.elapsed_seconds(),
        suspicious_events=attempt.suspicious_events,
        started_at=attempt.started_at,
        completed_at=completed_at,
        answers=dict(attempt.answers),
    )


class ResultStore:
    """Append-only log of finished test results."""

    def __init__(self, storage: Storage):
        self._storage = storage

    def record(self, attempt: TestAttempt, result: ScoreResult) -> TestResultRecord:
        """
        Save the result of a completed attempt.

        Raises:
            LoadError: If the backend is unavailable
        """
        record = build_record(attempt, result)
        try:
            self._storage.append(RESULTS_KEY, record.model_dump(mode="json"))
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)
        logger.debug(
            "Result record saved",
            extra={"user_id": attempt.user_id, "test_id": attempt.test_id},
        )
        return record

    def list_results(self, user_id: Optional[str] = None) -> List[TestResultRecord]:
        """Return saved results oldest first, optionally only one user's."""
        try:
            items = self._storage.get_list(RESULTS_KEY)
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)
        records = [TestResultRecord.model_validate(item) for item in items]
        if user_id is not None:
            records = [r for r in records if r.user_id == user_id]
        return records
