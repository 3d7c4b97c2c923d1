"""
TapMedia Backend — Search Service Unit Tests
=============================================

What:  Tests for search expression building, page-size clamping and result shaping.
"""

import pytest

from tapmedia.schemas.media import SearchParams
from tapmedia.services.search_service import (
    BASE_EXPRESSION,
    SearchService,
    build_expression,
    clamp_max_results,
)


class TestSearchHelpers:

    def test_expression_without_filters(self):
        assert build_expression("", None) == BASE_EXPRESSION

    def test_expression_with_tag_and_folder(self):
        assert build_expression("Jane Doe", "events/2023") == (
            f'{BASE_EXPRESSION} AND tags:"Jane Doe" AND folder:"events/2023"'
        )

    def test_quotes_escaped(self):
        assert build_expression('say "hi"', None).endswith('tags:"say \\"hi\\""')

    def test_clamp_max_results(self):
        assert clamp_max_results(None) == 30
        assert clamp_max_results(0) == 30
        assert clamp_max_results(-5) == 30
        assert clamp_max_results(50) == 50
        assert clamp_max_results(500) == 100


class TestSearchService:

    @pytest.mark.asyncio
    async def test_search_shapes_results(self, mock_cloudinary_client):
        mock_cloudinary_client.search.return_value = {
            "resources": [
                {
                    "asset_id": "a1",
                    "public_id": "tap_1_team",
                    "secure_url": "https://res.cloudinary.com/test-cloud/image/upload/tap_1_team.jpg",
                    "resource_type": "image",
                    "tags": ["Jane Doe"],
                    "context": {"alt": "Team", "caption": "Spring", "raw_description": "Formal"},
                },
            ],
            "next_cursor": "next-1",
            "total_count": 41,
        }
        service = SearchService(client=mock_cloudinary_client)

        response = await service.search(SearchParams(q=" Jane Doe ", max_results=500))

        mock_cloudinary_client.search.assert_awaited_once_with(
            f'{BASE_EXPRESSION} AND tags:"Jane Doe"', 100, None
        )
        assert response.total_count == 41
        assert response.next_cursor == "next-1"
        result = response.results[0]
        assert result.public_id == "tap_1_team"
        assert result.alt == "Team"
        assert result.caption == "Spring"
        assert result.description == "Formal"

    @pytest.mark.asyncio
    async def test_empty_search_passes_cursor(self, mock_cloudinary_client):
        service = SearchService(client=mock_cloudinary_client)

        response = await service.search(SearchParams(next_cursor="abc"))

        mock_cloudinary_client.search.assert_awaited_once_with(BASE_EXPRESSION, 30, "abc")
        assert response.results == []
        assert response.total_count == 0
