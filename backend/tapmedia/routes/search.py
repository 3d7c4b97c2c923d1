"""
TapMedia Backend — Search Route
================================

What:  GET|POST /api/search over the tagged asset library.
How:   Parameters come from the query string (GET) or a JSON body (POST);
       SearchService builds the Cloudinary expression and shapes results.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tapmedia.dependencies import require_allowed_origin, require_api_key
from tapmedia.schemas.media import ErrorResponse, SearchParams, SearchResponse
from tapmedia.services.search_service import search_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Search"],
    dependencies=[Depends(require_allowed_origin), Depends(require_api_key)],
)

_ERRORS = {
    401: {"description": "Invalid or missing API key", "model": ErrorResponse},
    403: {"description": "Origin not allowed", "model": ErrorResponse},
    502: {"description": "Cloudinary search failed", "model": ErrorResponse},
}


@router.get("/search", response_model=SearchResponse, responses=_ERRORS, summary="Search assets")
async def search_get(
    q: str = Query(default="", description="Tag to match"),
    next_cursor: Optional[str] = Query(default=None),
    max_results: Optional[int] = Query(default=None, description="Page size (default 30, max 100)"),
    folder: Optional[str] = Query(default=None),
) -> SearchResponse:
    params = SearchParams(q=q, next_cursor=next_cursor, max_results=max_results, folder=folder)
    return await search_service.search(params)


@router.post("/search", response_model=SearchResponse, responses=_ERRORS, summary="Search assets")
async def search_post(body: Optional[SearchParams] = None) -> SearchResponse:
    return await search_service.search(body or SearchParams())
