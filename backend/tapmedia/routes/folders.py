"""
TapMedia Backend — Folder Listing Route
========================================

What:  GET /api/folders for the uploader's folder picker.
How:   Delegates to the cached FolderLister. An upstream failure is answered
       with an explicit error body and an empty list, so the page can fall
       back to uploading into the root folder.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from tapmedia.exceptions import UpstreamError
from tapmedia.middleware.request_id import request_id_var
from tapmedia.schemas.media import FolderListResponse
from tapmedia.services.folder_service import folder_lister

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Folders"])


@router.get(
    "/folders",
    response_model=FolderListResponse,
    responses={502: {"description": "Cloudinary unreachable", "model": FolderListResponse}},
    summary="List Cloudinary folders",
)
async def list_folders():
    try:
        folders = await folder_lister.list_folders()
    except UpstreamError as e:
        logger.error("[%s] Folder listing failed: %s", request_id_var.get(""), e.message)
        body = FolderListResponse(success=False, folders=[], error=e.message)
        return JSONResponse(status_code=502, content=body.model_dump(by_alias=True))

    return FolderListResponse(success=True, folders=folders)
