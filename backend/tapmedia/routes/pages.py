"""
TapMedia Backend — Page & Version Routes
=========================================

What:  GET /api/uploader serves the bulk uploader page (API key required);
       GET /api/version reports the deployed version.
"""

import json
import logging
from pathlib import Path

import aiofiles
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from tapmedia import __version__
from tapmedia.config import settings
from tapmedia.dependencies import require_api_key
from tapmedia.exceptions import FileStorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Pages"])


@router.get(
    "/uploader",
    response_class=HTMLResponse,
    dependencies=[Depends(require_api_key)],
    summary="Serve the bulk uploader page",
)
async def uploader_page() -> HTMLResponse:
    page = Path(settings.uploader_page)
    try:
        async with aiofiles.open(page, "r", encoding="utf-8") as f:
            html = await f.read()
    except OSError as e:
        logger.error("Error serving uploader from %s: %s", page, str(e))
        raise FileStorageError(
            message="Failed to load uploader interface",
            context={"path": str(page)},
        )
    return HTMLResponse(content=html)


@router.get("/version", summary="Deployed application version")
async def version() -> dict:
    """Contents of VERSION_FILE, or the package version when it is unreadable."""
    try:
        async with aiofiles.open(settings.version_file, "r", encoding="utf-8") as f:
            data = json.loads(await f.read())
        if isinstance(data, dict):
            return data
        logger.warning("Version file %s does not hold a JSON object", settings.version_file)
    except (OSError, ValueError) as e:
        logger.warning("Error reading version file: %s", str(e))
    return {"version": __version__}
