"""
Pydantic schemas for questions and the test catalog.
"""
import enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_OPTIONS = 6
MAX_CORRECT_ANSWERS = 3


class QuestionType(str, enum.Enum):
    """Question type enumeration."""

    SINGLE = "single"
    MULTIPLE = "multiple"


class Question(BaseModel):
    """One question parsed from a spreadsheet row. Immutable after load."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Question text")
    options: List[str] = Field(
        default_factory=list,
        max_length=MAX_OPTIONS,
        description="Answer options in display order",
    )
    correct_answers: List[str] = Field(
        default_factory=list,
        max_length=MAX_CORRECT_ANSWERS,
        description="Option values that must be selected for full credit",
    )
    type: QuestionType = Field(QuestionType.MULTIPLE, description="Question type")
    points: int = Field(0, ge=0, description="Points awarded for a correct answer")
    image: Optional[str] = Field(None, description="Image URL path, if any")

    @property
    def correct_set(self) -> frozenset:
        return frozenset(str(answer) for answer in self.correct_answers)


class TestInfo(BaseModel):
    """A test available for selection."""

    model_config = ConfigDict(frozen=True)

    test_id: str = Field(..., description="Test number")
    name: str = Field(..., description="Display name")
    questions_file: str = Field(..., description="Path to the questions spreadsheet")
    time_limit_seconds: int = Field(
        0, ge=0, description="Time allowed per attempt (0 = unlimited)"
    )
