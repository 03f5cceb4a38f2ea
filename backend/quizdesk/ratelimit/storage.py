"""
Key-value storage backends with TTL support.

Shared by the login rate limiter and the test attempt store. Values must be
JSON-serializable so the in-memory and Redis backends behave the same.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import threading
import time

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a storage backend cannot complete an operation."""


class Storage(ABC):
    """
    Abstract storage interface.

    This interface allows different storage backends to be used,
    making it easy to switch from in-memory to Redis.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Get value for a key.

        Args:
            key: Storage key

        Returns:
            Stored value or None if not found
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value for a key with optional TTL.

        Args:
            key: Storage key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiration)
        """
        pass

    @abstractmethod
    def update(
        self,
        key: str,
        updater: Callable[[Optional[Any]], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Atomically read, transform and write a key.

        The updater receives the current value (or None) and returns the new
        value. Exceptions raised by the updater abort the write and propagate.

        Args:
            key: Storage key
            updater: Function computing the new value
            ttl: Time-to-live in seconds for the written value

        Returns:
            The value written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Delete a key.

        Args:
            key: Storage key to delete
        """
        pass

    @abstractmethod
    def pop_if(self, key: str, predicate: Callable[[Any], bool]) -> Optional[Any]:
        """
        Atomically delete a key if its current value satisfies `predicate`.

        Args:
            key: Storage key
            predicate: Called with the stored value (never None)

        Returns:
            The deleted value, or None if the key was missing or kept
        """
        pass

    @abstractmethod
    def append(self, key: str, value: Any) -> None:
        """
        Append a value to the list stored at a key, creating it if needed.

        Lists never expire.
        """
        pass

    @abstractmethod
    def get_list(self, key: str) -> List[Any]:
        """Return all values appended to a key, oldest first."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all stored data."""
        pass

    def is_connected(self) -> bool:
        """Check if the backend is reachable."""
        return True

    def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryStorage(Storage):
    """
    In-memory storage backend.

    Uses Python dictionaries with TTL support via expiration timestamps.
    Expired entries are removed lazily and by a periodic sweep.

    Thread-safe with locks for concurrent access.

    Note: Data is lost on process restart and is not shared between workers.
    """

    def __init__(self, cleanup_interval: int = 60):
        """
        Initialize in-memory storage.

        Args:
            cleanup_interval: How often to cleanup expired entries (seconds)
        """
        self._data: Dict[str, Any] = {}
        self._expiry: Dict[str, float] = {}
        self._lock = threading.RLock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    def _get_unlocked(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None

        if key in self._expiry and time.time() > self._expiry[key]:
            del self._data[key]
            del self._expiry[key]
            return None

        return self._data[key]

    def _set_unlocked(self, key: str, value: Any, ttl: Optional[int]) -> None:
        # Round-trip through JSON so callers never share mutable state with
        # the store and unserializable values fail like they would in Redis.
        self._data[key] = json.loads(json.dumps(value))

        if ttl is not None:
            self._expiry[key] = time.time() + ttl
        elif key in self._expiry:
            del self._expiry[key]

    def get(self, key: str) -> Optional[Any]:
        """Get value for a key, returning None if expired or not found."""
        with self._lock:
            self._maybe_cleanup()
            value = self._get_unlocked(key)
            return None if value is None else json.loads(json.dumps(value))

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set value for a key with optional TTL."""
        with self._lock:
            self._set_unlocked(key, value, ttl)

    def update(
        self,
        key: str,
        updater: Callable[[Optional[Any]], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """Read-modify-write under the storage lock."""
        with self._lock:
            current = self._get_unlocked(key)
            if current is not None:
                current = json.loads(json.dumps(current))
            new_value = updater(current)
            self._set_unlocked(key, new_value, ttl)
            return new_value

    def delete(self, key: str) -> None:
        """Delete a key."""
        with self._lock:
            self._data.pop(key, None)
            self._expiry.pop(key, None)

    def pop_if(self, key: str, predicate: Callable[[Any], bool]) -> Optional[Any]:
        """Check and delete under the storage lock."""
        with self._lock:
            current = self._get_unlocked(key)
            if current is None:
                return None
            current = json.loads(json.dumps(current))
            if not predicate(current):
                return None
            self._data.pop(key, None)
            self._expiry.pop(key, None)
            return current

    def append(self, key: str, value: Any) -> None:
        """Append to a list under the storage lock."""
        with self._lock:
            items = self._get_unlocked(key) or []
            items.append(json.loads(json.dumps(value)))
            self._data[key] = items
            self._expiry.pop(key, None)

    def get_list(self, key: str) -> List[Any]:
        """Return a copy of the list stored at a key."""
        with self._lock:
            return json.loads(json.dumps(self._get_unlocked(key) or []))

    def clear(self) -> None:
        """Clear all stored data."""
        with self._lock:
            self._data.clear()
            self._expiry.clear()

    def _maybe_cleanup(self) -> None:
        """Cleanup expired entries if cleanup interval has passed."""
        current_time = time.time()

        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = current_time
        expired_keys = [
            key for key, expiry in self._expiry.items() if current_time > expiry
        ]

        for key in expired_keys:
            self._data.pop(key, None)
            del self._expiry[key]

    def get_stats(self) -> dict:
        """
        Get storage statistics (for monitoring/debugging).

        Returns:
            Dict with keys: total_keys, expired_keys, active_keys
        """
        with self._lock:
            current_time = time.time()
            expired_count = sum(
                1 for expiry in self._expiry.values() if current_time > expiry
            )

            return {
                "total_keys": len(self._data),
                "expired_keys": expired_count,
                "active_keys": len(self._data) - expired_count,
            }


class RedisStorage(Storage):
    """
    Redis storage backend.

    Shares state across workers and server instances.

    Features:
    - Connection pooling for efficient resource usage
    - JSON serialization for cross-platform compatibility
    - Namespaced keys to avoid collisions with other Redis data
    - Optimistic transactions (WATCH/MULTI) for atomic updates

    Redis failures raise StorageError; callers decide whether to fail open.
    """

    KEY_PREFIX = "quizdesk:"

    # Attempts before giving up on a contended WATCH transaction
    MAX_UPDATE_RETRIES = 10

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: Optional[str] = None,
        connection_pool_size: int = 10,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
        retry_on_timeout: bool = True,
    ):
        """
        Initialize Redis storage with connection pooling.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0
                       or rediss://:password@host:port/db)
            key_prefix: Optional custom prefix for keys (defaults to "quizdesk:")
            connection_pool_size: Maximum number of connections in the pool
            socket_timeout: Timeout for socket operations in seconds
            socket_connect_timeout: Timeout for socket connections in seconds
            retry_on_timeout: Whether to retry on timeout errors
        """
        import redis

        self._key_prefix = key_prefix or self.KEY_PREFIX

        self._pool = redis.ConnectionPool.from_url(
            redis_url,
            max_connections=connection_pool_size,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
            retry_on_timeout=retry_on_timeout,
        )
        self._redis = redis.Redis(connection_pool=self._pool)

        try:
            self._redis.ping()
            logger.info("Successfully connected to Redis")
        except redis.RedisError as e:
            logger.warning(
                f"Could not connect to Redis on startup: {e}. "
                "Storage operations will fail until Redis is available."
            )

    def _make_key(self, key: str) -> str:
        """Create a namespaced key to avoid collisions."""
        return f"{self._key_prefix}{key}"

    @staticmethod
    def _decode(raw: Optional[bytes]) -> Optional[Any]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from Redis.

        Raises:
            StorageError: On Redis or decode errors
        """
        import redis

        try:
            return self._decode(self._redis.get(self._make_key(key)))
        except redis.RedisError as e:
            logger.error(f"Redis error during get({key}): {e}")
            raise StorageError(str(e)) from e
        except ValueError as e:
            logger.error(f"JSON decode error during get({key}): {e}")
            raise StorageError(str(e)) from e

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value in Redis with optional TTL.

        Raises:
            StorageError: On Redis or encode errors
        """
        import redis

        try:
            serialized = json.dumps(value)
            full_key = self._make_key(key)

            if ttl is not None and ttl > 0:
                self._redis.setex(full_key, ttl, serialized)
            else:
                self._redis.set(full_key, serialized)
        except redis.RedisError as e:
            logger.error(f"Redis error during set({key}): {e}")
            raise StorageError(str(e)) from e
        except (TypeError, ValueError) as e:
            logger.error(f"JSON encode error during set({key}): {e}")
            raise StorageError(str(e)) from e

    def update(
        self,
        key: str,
        updater: Callable[[Optional[Any]], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Atomic read-modify-write using WATCH/MULTI.

        Retries when another client modifies the key between the read and
        the write.

        Raises:
            StorageError: On Redis errors or persistent contention
        """
        import redis

        full_key = self._make_key(key)
        try:
            with self._redis.pipeline() as pipe:
                for _ in range(self.MAX_UPDATE_RETRIES):
                    try:
                        pipe.watch(full_key)
                        current = self._decode(pipe.get(full_key))
                        new_value = updater(current)
                        serialized = json.dumps(new_value)
                        pipe.multi()
                        if ttl is not None and ttl > 0:
                            pipe.setex(full_key, ttl, serialized)
                        else:
                            pipe.set(full_key, serialized)
                        pipe.execute()
                        return new_value
                    except redis.WatchError:
                        continue
                    finally:
                        pipe.reset()
        except redis.RedisError as e:
            logger.error(f"Redis error during update({key}): {e}")
            raise StorageError(str(e)) from e
        except (TypeError, ValueError) as e:
            logger.error(f"JSON error during update({key}): {e}")
            raise StorageError(str(e)) from e

        raise StorageError(f"Too much contention updating {key}")

    def delete(self, key: str) -> None:
        """
        Delete a key from Redis.

        Raises:
            StorageError: On Redis errors
        """
        import redis

        try:
            self._redis.delete(self._make_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis error during delete({key}): {e}")
            raise StorageError(str(e)) from e

    def pop_if(self, key: str, predicate: Callable[[Any], bool]) -> Optional[Any]:
        """
        Conditional delete using WATCH/MULTI/DEL.

        The key is deleted only if it was not modified after the predicate
        saw it.

        Raises:
            StorageError: On Redis errors or persistent contention
        """
        import redis

        full_key = self._make_key(key)
        try:
            with self._redis.pipeline() as pipe:
                for _ in range(self.MAX_UPDATE_RETRIES):
                    try:
                        pipe.watch(full_key)
                        current = self._decode(pipe.get(full_key))
                        if current is None or not predicate(current):
                            return None
                        pipe.multi()
                        pipe.delete(full_key)
                        pipe.execute()
                        return current
                    except redis.WatchError:
                        continue
                    finally:
                        pipe.reset()
        except redis.RedisError as e:
            logger.error(f"Redis error during pop_if({key}): {e}")
            raise StorageError(str(e)) from e
        except ValueError as e:
            logger.error(f"JSON decode error during pop_if({key}): {e}")
            raise StorageError(str(e)) from e

        raise StorageError(f"Too much contention deleting {key}")

    def append(self, key: str, value: Any) -> None:
        """
        Append to a Redis list with RPUSH.

        Raises:
            StorageError: On Redis or encode errors
        """
        import redis

        try:
            self._redis.rpush(self._make_key(key), json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"Redis error during append({key}): {e}")
            raise StorageError(str(e)) from e
        except (TypeError, ValueError) as e:
            logger.error(f"JSON encode error during append({key}): {e}")
            raise StorageError(str(e)) from e

    def get_list(self, key: str) -> List[Any]:
        """
        Read a whole Redis list with LRANGE.

        Raises:
            StorageError: On Redis or decode errors
        """
        import redis

        try:
            raw_items = self._redis.lrange(self._make_key(key), 0, -1)
            return [self._decode(raw) for raw in raw_items]
        except redis.RedisError as e:
            logger.error(f"Redis error during get_list({key}): {e}")
            raise StorageError(str(e)) from e
        except ValueError as e:
            logger.error(f"JSON decode error during get_list({key}): {e}")
            raise StorageError(str(e)) from e

    def clear(self) -> None:
        """
        Clear all keys under this storage's prefix.

        Only clears prefixed keys, not the entire database.
        """
        import redis

        try:
            pattern = f"{self._key_prefix}*"
            cursor: int = 0
            while True:
                cursor, keys = self._redis.scan(cursor, match=pattern, count=100)
                if keys:
                    self._redis.delete(*keys)
                if cursor == 0:
                    break
        except redis.RedisError as e:
            logger.error(f"Redis error during clear(): {e}")
            raise StorageError(str(e)) from e

    def is_connected(self) -> bool:
        """
        Check if Redis connection is healthy.

        Returns:
            True if connected and responsive, False otherwise
        """
        import redis

        try:
            self._redis.ping()
            return True
        except redis.RedisError:
            return False

    def close(self) -> None:
        """Disconnect all pooled connections."""
        try:
            self._pool.disconnect()
        except Exception as e:
            logger.warning(f"Error closing Redis connection pool: {e}")
