"""
TapMedia Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Reports local state only; it never calls Cloudinary, so a probe
       cannot burn Admin API rate limit.

Status levels:
    - ok:        Cloudinary credentials are configured
    - degraded:  Credentials missing; upload, folders and search will fail
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from tapmedia import __version__
from tapmedia.schemas.media import HealthResponse
from tapmedia.services.cloudinary_client import cloudinary_client
from tapmedia.services.folder_service import folder_cache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    configured = cloudinary_client.is_configured()
    if not configured:
        logger.warning("Health check: Cloudinary credentials missing")

    return HealthResponse(
        status="ok" if configured else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        cloudinary="configured" if configured else "unconfigured",
        folder_cache="warm" if folder_cache.is_warm else "cold",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
