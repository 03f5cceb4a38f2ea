"""
Client for the blob store that hosts test spreadsheets and images.

Only listing is needed: it backs the connectivity check in /health and
scripts/check_services.py.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from quizdesk.core.config import settings
from quizdesk.core.error_responses import ErrorMessages
from quizdesk.core.exceptions import LoadError

logger = logging.getLogger(__name__)

BLOB_API_VERSION = "7"


class BlobStorageClient:
    """Lists blobs through the blob store's HTTP API.

    Attributes:
        api_url: Base URL of the blob API
        token: Read/write token sent as a bearer token
        timeout: HTTP request timeout in seconds
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.api_url = (api_url or settings.BLOB_API_URL).rstrip("/")
        self.token = token if token is not None else settings.BLOB_READ_WRITE_TOKEN
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "x-api-version": BLOB_API_VERSION,
        }

    def list_blobs(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List blobs, following pagination cursors.

        Args:
            prefix: Only return blobs whose pathname starts with this

        Returns:
            Blob descriptors as returned by the API (pathname, url, size, ...)

        Raises:
            LoadError: If no token is configured or the API call fails
        """
        if not self.is_configured:
            raise LoadError(ErrorMessages.BLOB_STORAGE_UNAVAILABLE)

        blobs: List[Dict[str, Any]] = []
        params: Dict[str, str] = {}
        if prefix:
            params["prefix"] = prefix

        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    response = client.get(
                        self.api_url, params=params, headers=self._get_headers()
                    )
                    response.raise_for_status()
                    data = response.json()
                    blobs.extend(data.get("blobs", []))
                    cursor = data.get("cursor")
                    if not data.get("hasMore") or not cursor:
                        break
                    params["cursor"] = cursor
        except httpx.HTTPError as e:
            logger.error(f"Blob storage request failed: {e}")
            raise LoadError(ErrorMessages.BLOB_STORAGE_UNAVAILABLE, original_error=e)
        except ValueError as e:
            logger.error(f"Blob storage returned invalid JSON: {e}")
            raise LoadError(ErrorMessages.BLOB_STORAGE_UNAVAILABLE, original_error=e)

        logger.info(f"Blob storage listed {len(blobs)} blobs")
        return blobs
