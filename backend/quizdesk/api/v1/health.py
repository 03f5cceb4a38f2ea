"""
Health check endpoint.
"""
import logging

from fastapi import APIRouter, Depends, Query

from quizdesk.core.attempt_store import AttemptStore
from quizdesk.core.auth.dependencies import get_attempt_store
from quizdesk.core.config import settings
from quizdesk.core.datetime_utils import utc_now
from quizdesk.core.exceptions import LoadError
from quizdesk.services.blob_storage import BlobStorageClient

logger = logging.getLogger(__name__)

router = APIRouter()


def get_blob_client() -> BlobStorageClient:
    return BlobStorageClient()


@router.get("/health")
def health_check(
    deep: bool = Query(False, description="Also list the blob store"),
    store: AttemptStore = Depends(get_attempt_store),
    blob_client: BlobStorageClient = Depends(get_blob_client),
):
    """
    Report service health.

    Always answers 200; `status` is "degraded" when a dependency is down.
    With `deep=true` the blob store is listed as well.
    """
    store_connected = store.is_healthy()
    result = {
        "status": "healthy" if store_connected else "degraded",
        "timestamp": utc_now().isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "attempt_store": {
            "type": store.storage_type,
            "connected": store_connected,
        },
    }

    if deep:
        blob_status = {"configured": blob_client.is_configured, "reachable": False}
        if blob_client.is_configured:
            try:
                blob_status["blob_count"] = len(blob_client.list_blobs())
                blob_status["reachable"] = True
            except LoadError as e:
                logger.warning(f"Blob storage health check failed: {e.message}")
                result["status"] = "degraded"
        result["blob_storage"] = blob_status

    return result
