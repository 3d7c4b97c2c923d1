"""
TapMedia Backend — Request Access Dependencies
===============================================

What:  FastAPI dependencies that gate the protected routes.
How:   Injected with `Depends(...)`; each raises an application exception
       that the global handlers turn into 401 / 403 / 500.

Checks:
    require_api_key        ?key= or x-api-key must equal UPLOADER_API_KEY
    require_allowed_origin Referer prefix / Origin match against ALLOWED_ORIGINS
    require_upload_origin  same, but also admits Host: localhost (dev uploads)
"""

import hmac
import logging
from typing import Optional

from fastapi import Header, Query, Request

from tapmedia.config import settings
from tapmedia.exceptions import AuthenticationError, ConfigError, OriginNotAllowedError

logger = logging.getLogger(__name__)


def is_allowed_origin(
    referer: str,
    origin: str,
    host: str = "",
    allow_localhost_host: bool = False,
) -> bool:
    if allow_localhost_host and "localhost" in host:
        return True
    allowed = settings.allowed_origins_list
    return any(referer.startswith(a) for a in allowed) or origin in allowed


async def require_api_key(
    key: Optional[str] = Query(default=None, description="Uploader API key"),
    x_api_key: Optional[str] = Header(default=None),
) -> None:
    expected = settings.uploader_api_key
    if not expected:
        logger.error("UPLOADER_API_KEY environment variable not set")
        raise ConfigError(message="Server configuration error", missing=["UPLOADER_API_KEY"])

    supplied = key or x_api_key
    if not supplied or not hmac.compare_digest(supplied.encode(), expected.encode()):
        raise AuthenticationError()


def _check_origin(request: Request, allow_localhost_host: bool) -> None:
    referer = request.headers.get("referer", "")
    origin = request.headers.get("origin", "")
    host = request.headers.get("host", "")
    if not is_allowed_origin(referer, origin, host, allow_localhost_host):
        logger.warning("Rejected request from origin=%r referer=%r", origin, referer)
        raise OriginNotAllowedError(context={"origin": origin})


async def require_allowed_origin(request: Request) -> None:
    _check_origin(request, allow_localhost_host=False)


async def require_upload_origin(request: Request) -> None:
    _check_origin(request, allow_localhost_host=True)
