"""
Sentry error tracking.

Usage:
    from quizdesk.observability import capture_error

    capture_error(exc, context={"path": "/answer"}, tags={"error_type": "LoadError"})

Everything is a no-op until init_sentry() succeeds with a DSN.
"""
import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

logger = logging.getLogger(__name__)

_initialized = False


def init_sentry(
    dsn: str,
    traces_sample_rate: float,
    environment: str,
    release: Optional[str] = None,
) -> bool:
    """Initialize the Sentry SDK with FastAPI/Starlette integrations.

    Returns:
        True if Sentry was initialized, False if skipped (no DSN) or failed.
    """
    global _initialized

    if not dsn:
        logger.debug("Sentry initialization skipped (DSN not configured)")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            release=release,
            traces_sample_rate=traces_sample_rate,
            integrations=[
                LoggingIntegration(level=None, event_level=None),
                FastApiIntegration(transaction_style="endpoint"),
                StarletteIntegration(transaction_style="endpoint"),
            ],
            send_default_pii=False,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
        return False

    _initialized = True
    logger.info(
        f"Sentry initialized for environment '{environment}' "
        f"with {traces_sample_rate * 100:.0f}% trace sampling"
    )
    return True


def capture_error(
    exception: BaseException,
    *,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
    user_id: Optional[str] = None,
) -> Optional[str]:
    """Capture an exception and send it to Sentry.

    Args:
        exception: The exception to capture
        context: Additional context attached as "additional"
        tags: Tags for filtering in Sentry
        user_id: Authenticated user, if known

    Returns:
        Event ID if captured, None if Sentry is not initialized.
    """
    if not _initialized:
        return None

    with sentry_sdk.new_scope() as scope:
        if context:
            scope.set_context("additional", {k: str(v) for k, v in context.items()})
        if tags:
            for key, value in tags.items():
                scope.set_tag(key, value)
        if user_id:
            scope.set_user({"id": user_id})
        return sentry_sdk.capture_exception(exception)


def shutdown(timeout: float = 2.0) -> None:
    """Flush pending events before the process exits."""
    if _initialized:
        sentry_sdk.flush(timeout=timeout)
