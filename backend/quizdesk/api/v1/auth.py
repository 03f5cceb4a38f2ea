"""
Authentication endpoints: login page, login and logout.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from quizdesk.core.auth.credentials import CredentialTable
from quizdesk.core.auth.dependencies import get_credentials, identity_from_request
from quizdesk.core.auth.security import create_identity_token
from quizdesk.core.config import settings
from quizdesk.core.error_responses import ErrorMessages, raise_bad_request
from quizdesk.core.exceptions import AuthError
from quizdesk.core.pages import render_login_page
from quizdesk.schemas.auth import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_CREDENTIAL_LENGTH = 128


@router.get("/", response_class=HTMLResponse)
def login_page(
    request: Request, credentials: CredentialTable = Depends(get_credentials)
):
    """
    Show the login form, or go straight to test selection when the caller is
    already signed in.
    """
    if identity_from_request(request, credentials) is not None:
        return RedirectResponse(url="/select-test", status_code=302)
    return HTMLResponse(render_login_page())


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    credentials: CredentialTable = Depends(get_credentials),
):
    """
    Check the password against the credential table and set the identity cookie.

    Args:
        body: Login request with the password

    Returns:
        Success flag, the matched user id and where to go next

    Raises:
        HTTPException: 400 if the password is missing or too long
        AuthError: 401 if no credential table entry matches
    """
    password = body.password
    if password is None or not password.strip():
        raise_bad_request(ErrorMessages.MISSING_CREDENTIAL)
    if len(password) > MAX_CREDENTIAL_LENGTH:
        raise_bad_request(ErrorMessages.CREDENTIAL_TOO_LONG)

    user_id = credentials.authenticate(password)
    if user_id is None:
        logger.warning("Failed login attempt")
        raise AuthError(ErrorMessages.INVALID_CREDENTIAL)

    response.set_cookie(
        key=settings.IDENTITY_COOKIE_NAME,
        value=create_identity_token(user_id),
        max_age=settings.IDENTITY_TOKEN_EXPIRE_HOURS * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    logger.info("User logged in", extra={"user_id": user_id})
    return LoginResponse(user_id=user_id)


@router.get("/logout")
def logout():
    """Clear the identity cookie and return to the login page."""
    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(
        key=settings.IDENTITY_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    return response
