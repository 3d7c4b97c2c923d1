"""
TapMedia Backend — Asset Search Service
========================================

What:  Builds a Cloudinary Search API expression from the search page's
       parameters and reduces the results to the fields the page renders.
Who:   GET|POST /api/search.

Expression grammar:
    base                     (resource_type:image OR resource_type:video)
    + q                      AND tags:"<q>"
    + folder                 AND folder:"<folder>"
"""

import logging
from typing import Any, Dict, Mapping, Optional

from tapmedia.schemas.media import SearchParams, SearchResponse, SearchResult
from tapmedia.services.cloudinary_client import CloudinaryClient, cloudinary_client

logger = logging.getLogger(__name__)

BASE_EXPRESSION = "(resource_type:image OR resource_type:video)"
DEFAULT_MAX_RESULTS = 30
MAX_RESULTS_CAP = 100


def escape_phrase(value: str) -> str:
    return value.replace('"', '\\"')


def build_expression(q: str, folder: Optional[str]) -> str:
    parts = [BASE_EXPRESSION]
    if q:
        parts.append(f'tags:"{escape_phrase(q)}"')
    if folder:
        parts.append(f'folder:"{escape_phrase(folder)}"')
    return " AND ".join(parts)


def clamp_max_results(value: Optional[int]) -> int:
    """Missing or non-positive → 30; anything above 100 → 100."""
    if not value or value < 1:
        return DEFAULT_MAX_RESULTS
    return min(value, MAX_RESULTS_CAP)


def to_search_result(resource: Mapping[str, Any]) -> SearchResult:
    context = resource.get("context") or {}
    return SearchResult(
        asset_id=resource.get("asset_id"),
        public_id=resource.get("public_id", ""),
        secure_url=resource.get("secure_url") or resource.get("url"),
        width=resource.get("width"),
        height=resource.get("height"),
        format=resource.get("format"),
        resource_type=resource.get("resource_type"),
        created_at=resource.get("created_at"),
        tags=resource.get("tags") or [],
        bytes=resource.get("bytes"),
        duration=resource.get("duration"),
        type=resource.get("type"),
        metadata=resource.get("metadata") or {},
        context=context,
        alt=context.get("alt"),
        caption=context.get("caption"),
        description=context.get("raw_description"),
    )


class SearchService:
    def __init__(self, client: Optional[CloudinaryClient] = None):
        self.client = client or cloudinary_client

    async def search(self, params: SearchParams) -> SearchResponse:
        """
        Run one page of an asset search.

        Raises:
            ConfigError:   Cloudinary credentials missing
            UpstreamError: Search API failed
        """
        q = (params.q or "").strip()
        folder = (params.folder or "").strip() or None
        cursor = (params.next_cursor or "").strip() or None
        expression = build_expression(q, folder)
        max_results = clamp_max_results(params.max_results)

        logger.info("Searching: %s (max_results=%d)", expression, max_results)
        data: Dict[str, Any] = await self.client.search(expression, max_results, cursor)

        results = [to_search_result(r) for r in data.get("resources") or []]
        return SearchResponse(
            results=results,
            next_cursor=data.get("next_cursor"),
            total_count=data.get("total_count") or len(results),
        )


search_service = SearchService()
