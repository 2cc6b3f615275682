"""Health check endpoint for the storegate API."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from storegate.storage.errors import StorageBackendError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

STOREGATE_VERSION = "0.1.0"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    time: str
    version: str
    backend: str


@router.get("/health", response_model=HealthResponse)
def get_health(request: Request) -> HealthResponse:
    """Report liveness; status is "degraded" (still HTTP 200) when the backend ping fails."""
    gateway = request.app.state.storage_service.gateway
    status = "ok"
    try:
        gateway.ping()
    except StorageBackendError as e:
        logger.warning("Storage backend health check failed: %s", e.message)
        status = "degraded"

    return HealthResponse(
        status=status,
        time=datetime.now(UTC).isoformat(),
        version=STOREGATE_VERSION,
        backend=gateway.backend_name,
    )
