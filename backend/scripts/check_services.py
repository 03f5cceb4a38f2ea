"""Check connectivity to the services QuizDesk depends on.

Pings Redis (when configured) and lists the blob store, then prints a
summary. Exits non-zero if any configured service is unreachable.

Usage:
    python scripts/check_services.py [--redis-url URL] [--blob-prefix PREFIX]

Requirements:
    - SECRET_KEY environment variable must be set (settings are loaded)
    - REDIS_URL and BLOB_READ_WRITE_TOKEN are read from the environment when
      not passed explicitly
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Tuple

# Add parent directory to path to import quizdesk modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from quizdesk.core.attempt_store import sanitize_redis_url  # noqa: E402
from quizdesk.core.config import settings  # noqa: E402
from quizdesk.core.exceptions import LoadError  # noqa: E402
from quizdesk.ratelimit.storage import RedisStorage  # noqa: E402
from quizdesk.services.blob_storage import BlobStorageClient  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CheckResult = Tuple[str, Optional[bool], str]


def check_redis(redis_url: str) -> CheckResult:
    """Ping Redis. Skipped (None) when no URL is configured."""
    if not redis_url:
        return "redis", None, "not configured"

    storage = RedisStorage(
        redis_url=redis_url, socket_timeout=5.0, socket_connect_timeout=5.0
    )
    try:
        if storage.is_connected():
            return "redis", True, f"connected to {sanitize_redis_url(redis_url)}"
        return "redis", False, f"no response from {sanitize_redis_url(redis_url)}"
    finally:
        storage.close()


def check_blob_storage(
    client: BlobStorageClient, prefix: Optional[str] = None
) -> CheckResult:
    """List the blob store. Skipped (None) when no token is configured."""
    if not client.is_configured:
        return "blob storage", None, "not configured"

    try:
        blobs = client.list_blobs(prefix)
    except LoadError as e:
        return "blob storage", False, e.message
    return "blob storage", True, f"{len(blobs)} blobs found"


def print_summary(results: List[CheckResult]) -> bool:
    """Print one line per check. Returns True if nothing failed."""
    print("\n" + "=" * 60)
    print("SERVICE CHECK")
    print("=" * 60)
    for name, ok, detail in results:
        label = "SKIP" if ok is None else ("OK" if ok else "FAIL")
        print(f"  [{label:4}] {name}: {detail}")
    print("=" * 60)
    return all(ok is not False for _, ok, _ in results)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Check Redis and blob storage connectivity"
    )
    parser.add_argument(
        "--redis-url",
        default=settings.REDIS_URL,
        help="Redis URL (default: REDIS_URL)",
    )
    parser.add_argument(
        "--blob-prefix",
        default=None,
        help="Only list blobs with this pathname prefix",
    )
    args = parser.parse_args(argv)

    results = [
        check_redis(args.redis_url),
        check_blob_storage(BlobStorageClient(), args.blob_prefix),
    ]
    if not print_summary(results):
        logger.error("One or more services are unreachable")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
