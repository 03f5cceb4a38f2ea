"""
Pydantic schemas for the quiz API.
"""
from .auth import LoginRequest, LoginResponse
from .questions import Question, QuestionType, TestInfo
from .responses import AnswerSubmission, AnswerSubmitResponse, ScoreResult, SuccessResponse
from .test_sessions import TestAttempt, TestResultRecord

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "Question",
    "QuestionType",
    "TestInfo",
    "AnswerSubmission",
    "AnswerSubmitResponse",
    "ScoreResult",
    "SuccessResponse",
    "TestAttempt",
    "TestResultRecord",
]
