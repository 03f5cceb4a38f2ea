"""
Pydantic schemas for answer submission and scoring.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# Values are option texts; anything longer is not a real option.
MAX_ANSWER_LENGTH = 1000


class AnswerSubmission(BaseModel):
    """Schema for submitting the answer set for one question."""

    index: int = Field(..., description="Question index within the attempt")
    answer: List[str] = Field(
        default_factory=list, description="Selected option values"
    )
    version: Optional[int] = Field(
        None,
        ge=0,
        description="Attempt version the client last saw; stale versions are rejected",
    )

    @field_validator("answer")
    @classmethod
    def validate_answer(cls, v: List[str]) -> List[str]:
        """Trim values, drop blanks and duplicates while keeping order."""
        cleaned: List[str] = []
        for value in v:
            value = value.strip()
            if len(value) > MAX_ANSWER_LENGTH:
                raise ValueError(
                    f"Answer values must be at most {MAX_ANSWER_LENGTH} characters"
                )
            if value and value not in cleaned:
                cleaned.append(value)
        return cleaned


class AnswerSubmitResponse(BaseModel):
    """Schema returned after an answer is recorded."""

    success: bool = Field(True)
    version: int = Field(..., description="Attempt version after the write")


class SuccessResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool = Field(True)


class ScoreResult(BaseModel):
    """Score for a test attempt."""

    score: int = Field(..., ge=0, description="Points awarded")
    total: int = Field(..., ge=0, description="Maximum possible points")
    per_question: List[int] = Field(
        default_factory=list, description="Points awarded per question index"
    )
