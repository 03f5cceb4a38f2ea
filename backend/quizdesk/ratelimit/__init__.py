"""
Rate limiting and the key-value storage it shares with the attempt store.
"""
from .limiter import RateLimiter
from .middleware import RateLimitMiddleware, get_client_identifier
from .storage import InMemoryStorage, RedisStorage, Storage, StorageError

__all__ = [
    "RateLimiter",
    "RateLimitMiddleware",
    "get_client_identifier",
    "InMemoryStorage",
    "RedisStorage",
    "Storage",
    "StorageError",
]
