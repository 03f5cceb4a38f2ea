"""
Domain exceptions raised by the quiz core.

Core modules (question loading, attempt storage, test delivery) raise these
instead of HTTPException so they stay usable outside a request, e.g. from
scripts. The handler registered in quizdesk.main converts them to JSON
responses using `status_code`.
"""
from typing import Optional

from fastapi import status


class QuizError(Exception):
    """Base class for all quiz errors.

    Attributes:
        message: User-facing error message
        status_code: HTTP status the request boundary should answer with
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(QuizError):
    """Missing or malformed request fields."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(QuizError):
    """Bad credential (401) or missing/invalid identity (403)."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(QuizError):
    """A requested test or attempt does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class NoActiveAttemptError(NotFoundError):
    """The caller has no test attempt in the store."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(QuizError):
    """The attempt changed since the caller last read it."""

    status_code = status.HTTP_409_CONFLICT


class LoadError(QuizError):
    """A spreadsheet or external service could not be read.

    Attributes:
        original_error: The underlying exception, kept for server-side logging
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error
