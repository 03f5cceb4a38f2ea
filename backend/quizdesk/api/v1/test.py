"""
Test-taking endpoints: choosing a test, viewing questions, answering and
viewing the result.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from quizdesk.core.auth.dependencies import get_current_identity, get_delivery_service
from quizdesk.core.error_responses import ErrorMessages, raise_bad_request
from quizdesk.core.pages import (
    render_no_result_page,
    render_question_page,
    render_result_page,
    render_select_test_page,
)
from quizdesk.core.question_loader import discover_tests
from quizdesk.core.test_delivery import TestDeliveryService
from quizdesk.schemas.responses import (
    AnswerSubmission,
    AnswerSubmitResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/select-test", response_class=HTMLResponse)
def select_test(user_id: str = Depends(get_current_identity)):
    """List the tests found in the questions directory."""
    return HTMLResponse(render_select_test_page(user_id, discover_tests().values()))


@router.get("/test")
def start_test(
    test: Optional[str] = Query(None, description="Test number"),
    user_id: str = Depends(get_current_identity),
    service: TestDeliveryService = Depends(get_delivery_service),
):
    """
    Start the chosen test and go to its first question.

    Any attempt the user already has is replaced.

    Raises:
        HTTPException: 400 if the test number is missing
        NotFoundError: 404 if the test does not exist
        LoadError: 500 if its questions cannot be loaded
    """
    if test is None or not test.strip():
        raise_bad_request(ErrorMessages.MISSING_TEST_NUMBER)

    service.start(user_id, test)
    return RedirectResponse(url="/test/question?index=0", status_code=302)


@router.get("/test/question", response_class=HTMLResponse)
def view_question(
    index: Optional[int] = Query(None, description="Question index"),
    user_id: str = Depends(get_current_identity),
    service: TestDeliveryService = Depends(get_delivery_service),
):
    """
    Show one question and make it the current one.

    Without `index` the current question is shown. Once the time limit has
    run out the user is sent to the result page instead.

    Raises:
        NoActiveAttemptError: 400 if no test was started
        ValidationError: 400 if the index is out of range or the test is finished
    """
    attempt = service.get(user_id)
    if not attempt.is_completed and attempt.is_expired():
        logger.info(
            "Time limit reached, finishing test",
            extra={"user_id": user_id, "test_id": attempt.test_id},
        )
        return RedirectResponse(url="/result", status_code=302)

    target = attempt.current_index if index is None else index
    attempt = service.navigate(user_id, target)
    return HTMLResponse(render_question_page(attempt, target))


@router.post("/answer", response_model=AnswerSubmitResponse)
def submit_answer(
    submission: AnswerSubmission,
    user_id: str = Depends(get_current_identity),
    service: TestDeliveryService = Depends(get_delivery_service),
):
    """
    Record the answer set for one question.

    Raises:
        NoActiveAttemptError: 400 if no test was started
        ValidationError: 400 for a bad index, finished test or expired time limit
        ConflictError: 409 if the submitted version is stale
    """
    attempt = service.submit_answer(
        user_id, submission.index, submission.answer, submission.version
    )
    return AnswerSubmitResponse(version=attempt.version)


@router.post("/report-suspicious", response_model=SuccessResponse)
def report_suspicious(
    user_id: str = Depends(get_current_identity),
    service: TestDeliveryService = Depends(get_delivery_service),
):
    """Count a suspicious-activity event (the test page lost visibility)."""
    service.report_suspicious(user_id)
    return SuccessResponse()


@router.get("/result", response_class=HTMLResponse)
def view_result(
    user_id: str = Depends(get_current_identity),
    service: TestDeliveryService = Depends(get_delivery_service),
):
    """
    Finish the test and show its score. The attempt is kept until /results.

    Raises:
        NoActiveAttemptError: 400 if no test was started
    """
    finished = service.finish(user_id)
    return HTMLResponse(render_result_page(finished.attempt, finished.result))


@router.get("/results", response_class=HTMLResponse)
def consume_results(
    user_id: str = Depends(get_current_identity),
    service: TestDeliveryService = Depends(get_delivery_service),
):
    """Show the completed test's result once, then discard the attempt."""
    finished = service.consume_results(user_id)
    if finished is None:
        return HTMLResponse(render_no_result_page())
    return HTMLResponse(render_result_page(finished.attempt, finished.result))
