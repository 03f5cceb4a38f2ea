"""
Pydantic schemas for test attempts.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from quizdesk.core.datetime_utils import ensure_timezone_aware, utc_now
from quizdesk.schemas.questions import Question


class TestAttempt(BaseModel):
    """One user's run through a test.

    Stored as JSON in the attempt store. Answers are keyed by question index;
    JSON object keys come back as strings and pydantic coerces them to int.
    """

    user_id: str = Field(..., description="Owning user id")
    test_id: str = Field(..., description="Test number")
    test_name: str = Field("", description="Test display name")
    questions: List[Question] = Field(..., description="Questions in display order")
    answers: Dict[int, List[str]] = Field(
        default_factory=dict, description="Recorded answer set per question index"
    )
    current_index: int = Field(0, ge=0, description="Question currently shown")
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = Field(None)
    time_limit_seconds: int = Field(0, ge=0, description="0 = unlimited")
    suspicious_events: int = Field(0, ge=0)
    version: int = Field(0, ge=0, description="Incremented on every store write")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def has_index(self, index: int) -> bool:
        return 0 <= index < len(self.questions)

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """Seconds since start, frozen at completion."""
        end = self.completed_at or now or utc_now()
        delta = ensure_timezone_aware(end) - ensure_timezone_aware(self.started_at)
        return max(0, int(delta.total_seconds()))

    def remaining_seconds(self, now: Optional[datetime] = None) -> Optional[int]:
        """Seconds left before the time limit, or None when unlimited."""
        if not self.time_limit_seconds:
            return None
        return max(0, self.time_limit_seconds - self.elapsed_seconds(now))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        remaining = self.remaining_seconds(now)
        return remaining is not None and remaining <= 0


class TestResultRecord(BaseModel):
    """Permanent record of a finished attempt, kept after the attempt is gone."""

    user_id: str = Field(..., description="Owning user id")
    test_id: str = Field(..., description="Test number")
    test_name: str = Field("", description="Test display name")
    score: int = Field(..., ge=0, description="Points awarded")
    total: int = Field(..., ge=0, description="Maximum possible points")
    per_question: List[int] = Field(
        default_factory=list, description="Points awarded per question index"
    )
    duration_seconds: int = Field(..., ge=0)
    suspicious_events: int = Field(0, ge=0)
    started_at: datetime
    completed_at: datetime
    answers: Dict[int, List[str]] = Field(default_factory=dict)
