"""
FastAPI authentication dependencies.
"""
import logging

from fastapi import Depends, Request, status

from quizdesk.core.attempt_store import AttemptStore
from quizdesk.core.config import settings
from quizdesk.core.error_responses import ErrorMessages
from quizdesk.core.exceptions import AuthError
from quizdesk.core.result_store import ResultStore
from quizdesk.core.test_delivery import TestDeliveryService
from .credentials import CredentialTable
from .security import user_id_from_token

logger = logging.getLogger(__name__)


def get_credentials(request: Request) -> CredentialTable:
    """Credential table loaded at startup."""
    return request.app.state.credentials


def get_attempt_store(request: Request) -> AttemptStore:
    """Attempt store created at startup."""
    return request.app.state.attempt_store


def get_result_store(request: Request) -> ResultStore:
    """Result store created at startup."""
    return request.app.state.result_store


def get_delivery_service(
    store: AttemptStore = Depends(get_attempt_store),
    results: ResultStore = Depends(get_result_store),
) -> TestDeliveryService:
    """Test delivery operations bound to the application's stores."""
    return TestDeliveryService(store, results=results)


def identity_from_request(request: Request, credentials: CredentialTable) -> str | None:
    """
    Resolve the identity cookie to a known user id.

    Returns:
        The user id, or None if the cookie is missing, invalid, expired or names
        a user that is no longer in the credential table
    """
    token = request.cookies.get(settings.IDENTITY_COOKIE_NAME)
    user_id = user_id_from_token(token)
    if user_id is None or user_id not in credentials:
        return None
    return user_id


async def get_current_identity(
    request: Request,
    credentials: CredentialTable = Depends(get_credentials),
) -> str:
    """
    Require a valid identity cookie.

    Attaches the user id to `request.state.user_id` for logging.

    Returns:
        The authenticated user id

    Raises:
        AuthError: 403 if the cookie is missing or does not identify a known user
    """
    if settings.IDENTITY_COOKIE_NAME not in request.cookies:
        raise AuthError(ErrorMessages.NOT_AUTHENTICATED, status.HTTP_403_FORBIDDEN)

    user_id = identity_from_request(request, credentials)
    if user_id is None:
        logger.info("Rejected invalid identity cookie", extra={"path": request.url.path})
        raise AuthError(ErrorMessages.INVALID_IDENTITY, status.HTTP_403_FORBIDDEN)

    request.state.user_id = user_id
    return user_id
