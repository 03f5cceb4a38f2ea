"""
Test attempt storage.

Holds at most one TestAttempt per user id. Attempts are JSON documents in a
key-value backend (in-memory or Redis) with a TTL that is refreshed on every
write, so abandoned attempts expire on their own.
"""
import logging
from typing import Callable, Optional
from urllib.parse import urlparse

from quizdesk.core.config import settings
from quizdesk.core.error_responses import ErrorMessages
from quizdesk.core.exceptions import LoadError, NoActiveAttemptError
from quizdesk.ratelimit.storage import InMemoryStorage, RedisStorage, Storage, StorageError
from quizdesk.schemas.test_sessions import TestAttempt

logger = logging.getLogger(__name__)

KEY_PREFIX = "attempt:"

# Short timeouts so a dead Redis fails the request quickly
REDIS_SOCKET_TIMEOUT = 2.0
REDIS_SOCKET_CONNECT_TIMEOUT = 2.0


def sanitize_redis_url(url: str) -> str:
    """
    Remove password from Redis URL for safe logging.

    Args:
        url: Redis connection URL (e.g., redis://:password@host:port/db)

    Returns:
        URL with password redacted
    """
    parsed = urlparse(url)
    if parsed.password:
        netloc = parsed.hostname or "localhost"
        if parsed.port:
            netloc = f"{netloc}:{parsed.port}"
        return f"{parsed.scheme}://{netloc}{parsed.path}"
    return url


def create_storage(backend: Optional[str] = None, redis_url: Optional[str] = None) -> Storage:
    """
    Create the storage backend based on configuration.

    If Redis is configured but unavailable, falls back to in-memory storage.

    Args:
        backend: "memory" or "redis" (defaults to ATTEMPT_STORAGE)
        redis_url: Redis URL (defaults to REDIS_URL)

    Returns:
        Storage: The configured storage backend
    """
    backend = backend or settings.ATTEMPT_STORAGE
    redis_url = redis_url or settings.REDIS_URL

    if backend == "redis" and redis_url:
        try:
            storage = RedisStorage(
                redis_url=redis_url,
                socket_timeout=REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=REDIS_SOCKET_CONNECT_TIMEOUT,
            )
            if storage.is_connected():
                logger.info(
                    f"Attempt store using Redis at {sanitize_redis_url(redis_url)}"
                )
                return storage
            storage.close()
            logger.warning(
                "Redis not available for attempt storage, falling back to in-memory "
                "storage. Attempts will NOT be shared across workers."
            )
        except Exception as e:
            logger.warning(
                f"Failed to initialize Redis storage: {e}. "
                "Falling back to in-memory storage."
            )

    logger.info("Attempt store using in-memory storage")
    return InMemoryStorage()


class AttemptStore:
    """
    Map of user id to the user's current test attempt.

    Every write bumps `version` and refreshes the TTL. Backend failures are
    raised as LoadError.
    """

    def __init__(self, storage: Storage, ttl_seconds: Optional[int] = None):
        """
        Args:
            storage: Key-value backend
            ttl_seconds: Lifetime of an attempt after its last write
                         (defaults to ATTEMPT_TTL_SECONDS)
        """
        self._storage = storage
        self._ttl = ttl_seconds or settings.ATTEMPT_TTL_SECONDS

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def storage_type(self) -> str:
        """Return the storage backend type: 'redis' or 'memory'."""
        return "redis" if isinstance(self._storage, RedisStorage) else "memory"

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{KEY_PREFIX}{user_id}"

    def get(self, user_id: str) -> Optional[TestAttempt]:
        """Return the user's attempt, or None."""
        try:
            data = self._storage.get(self._key(user_id))
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)
        if data is None:
            return None
        return TestAttempt.model_validate(data)

    def require(self, user_id: str) -> TestAttempt:
        """
        Return the user's attempt.

        Raises:
            NoActiveAttemptError: If the user has no attempt
        """
        attempt = self.get(user_id)
        if attempt is None:
            raise NoActiveAttemptError(ErrorMessages.NO_ACTIVE_ATTEMPT)
        return attempt

    def put(self, attempt: TestAttempt) -> TestAttempt:
        """
        Install an attempt, replacing any previous one for the same user.

        Returns:
            The stored attempt with its new version
        """

        def replace(current: Optional[dict]) -> dict:
            version = (current or {}).get("version", 0) + 1
            return attempt.model_copy(update={"version": version}).model_dump(
                mode="json"
            )

        try:
            data = self._storage.update(self._key(attempt.user_id), replace, ttl=self._ttl)
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)
        return TestAttempt.model_validate(data)

    def update(
        self, user_id: str, mutate: Callable[[TestAttempt], TestAttempt]
    ) -> TestAttempt:
        """
        Atomically apply `mutate` to the user's attempt.

        `mutate` receives the current attempt and returns the modified one; it
        may raise to abort without writing.

        Raises:
            NoActiveAttemptError: If the user has no attempt
        """

        def apply(current: Optional[dict]) -> dict:
            if current is None:
                raise NoActiveAttemptError(ErrorMessages.NO_ACTIVE_ATTEMPT)
            attempt = mutate(TestAttempt.model_validate(current))
            return attempt.model_copy(update={"version": attempt.version + 1}).model_dump(
                mode="json"
            )

        try:
            data = self._storage.update(self._key(user_id), apply, ttl=self._ttl)
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)
        return TestAttempt.model_validate(data)

    def delete(self, user_id: str) -> None:
        """Remove the user's attempt if present."""
        try:
            self._storage.delete(self._key(user_id))
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)

    def pop_completed(self, user_id: str) -> Optional[TestAttempt]:
        """
        Remove and return the user's attempt if it is completed.

        Check and delete happen atomically, so an attempt started in the
        meantime is left alone and a completed attempt is returned only once.
        """

        def completed(data: dict) -> bool:
            return data.get("completed_at") is not None

        try:
            data = self._storage.pop_if(self._key(user_id), completed)
        except StorageError as e:
            raise LoadError(ErrorMessages.STORAGE_UNAVAILABLE, original_error=e)
        if data is None:
            return None
        return TestAttempt.model_validate(data)

    def is_healthy(self) -> bool:
        """Check whether the backend is reachable."""
        return self._storage.is_connected()

    def close(self) -> None:
        """Close storage connection pools."""
        self._storage.close()
