"""
Standardized error response messages and builders.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant identifiers in parentheses when helpful: "(test: 2)"
- Use "Please try again later." for transient server errors

Usage:
    from quizdesk.core.error_responses import ErrorMessages, raise_bad_request

    raise_bad_request(ErrorMessages.MISSING_CREDENTIAL)
"""

from typing import NoReturn

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    INVALID_CREDENTIAL = "Invalid password."

    # ==========================================================================
    # Authorization Errors (403)
    # ==========================================================================
    NOT_AUTHENTICATED = "Not authenticated. Please log in."
    INVALID_IDENTITY = "Session is invalid or has expired. Please log in again."

    # ==========================================================================
    # Not Found Errors (400/404)
    # ==========================================================================
    NO_ACTIVE_ATTEMPT = "Test not started."

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    STALE_ATTEMPT = (
        "The test was changed in another window. Please reload the question."
    )

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    MISSING_CREDENTIAL = "Password must not be empty."
    CREDENTIAL_TOO_LONG = "Password is too long."
    MISSING_TEST_NUMBER = "Test number is required."
    TEST_ALREADY_FINISHED = "Test is already finished."
    TIME_LIMIT_EXCEEDED = "Time limit exceeded. Please finish the test."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    STORAGE_UNAVAILABLE = "Test storage is unavailable. Please try again later."
    BLOB_STORAGE_UNAVAILABLE = "Blob storage is unavailable."
    QUESTIONS_UNREADABLE = "Failed to load questions. Please try again later."
    CREDENTIALS_UNREADABLE = "Failed to load credentials."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def invalid_question_index(index: int) -> str:
        """Message for a question index outside the attempt."""
        return f"Invalid question number: {index}."

    @staticmethod
    def test_not_found(test_id: str) -> str:
        """Message when the catalog has no such test."""
        return f"Test not found (test: {test_id})."

    @staticmethod
    def questions_unavailable(test_id: str) -> str:
        """Message when a test's spreadsheet cannot be loaded."""
        return f"Failed to load questions (test: {test_id}). Please try again later."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 400 Bad Request
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )
