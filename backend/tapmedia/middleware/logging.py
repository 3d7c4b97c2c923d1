"""
TapMedia Backend — Request Logging Middleware
==============================================

What:  One access-log line per request: method, path, status, duration,
       request ID and client address.
Who:   Applied to every request except GET /health (probes run every few
       seconds and would drown everything else).

Privacy:
    Request bodies, uploaded files and the x-api-key header / `key` query
    parameter are never logged. Only the path is logged, not the query string.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tapmedia.middleware.request_id import request_id_var

logger = logging.getLogger("tapmedia.access")

SKIPPED_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each response at a level chosen from its status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.

    Typical durations:
        - GET /api/folders: ~1ms warm, several seconds on a cold cache
        - POST /api/upload: dominated by the Cloudinary upload + OCR
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
