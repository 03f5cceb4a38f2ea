"""
Fixed-window rate limiter.
"""
import logging
import time
from typing import Any, Dict, Optional, Tuple

from .storage import Storage, StorageError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Count requests per identifier in fixed time windows.

    Each identifier gets one counter per window, stored with a TTL equal to
    the window so old counters disappear on their own. Storage failures fail
    open: the request is allowed and the error logged.
    """

    def __init__(self, storage: Storage, default_limit: int, default_window: int):
        """
        Args:
            storage: Backend holding the counters
            default_limit: Requests allowed per window
            default_window: Window length in seconds
        """
        self.storage = storage
        self.default_limit = default_limit
        self.default_window = default_window

    def check(
        self,
        identifier: str,
        limit: Optional[int] = None,
        window: Optional[int] = None,
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Record one request and decide whether it is allowed.

        Args:
            identifier: Who is making the request (e.g. "ip:127.0.0.1")
            limit: Override for the request quota
            window: Override for the window length

        Returns:
            (allowed, metadata) where metadata has limit, remaining,
            reset_at and retry_after
        """
        limit = limit or self.default_limit
        window = window or self.default_window

        now = time.time()
        window_start = int(now // window) * window
        reset_at = window_start + window
        key = f"ratelimit:{identifier}:{window_start}"

        try:
            count = self.storage.update(
                key, lambda current: (current or 0) + 1, ttl=window
            )
        except StorageError as e:
            logger.warning(f"Rate limit storage unavailable, allowing request: {e}")
            return True, {
                "limit": limit,
                "remaining": limit,
                "reset_at": reset_at,
                "retry_after": 0,
            }

        allowed = count <= limit
        return allowed, {
            "limit": limit,
            "remaining": max(0, limit - count),
            "reset_at": reset_at,
            "retry_after": 0 if allowed else max(1, int(reset_at - now)),
        }