"""
TapMedia Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── fake_clock: Manually advanced time source for cache tests
    ├── mock_cloudinary_client: AsyncMock standing in for CloudinaryClient
    ├── sample_image_bytes: Fake image content for upload tests
    ├── api_headers: Allowed Origin + API key headers
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Settings are read once at import time, so these must be set before any
# tapmedia module is imported.
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "123456789"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret-not-real"
os.environ["UPLOADER_API_KEY"] = "test-uploader-key"
os.environ["UPLOAD_TMP_DIR"] = tempfile.mkdtemp(prefix="tapmedia_test_")
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

TEST_API_KEY = "test-uploader-key"
TEST_ORIGIN = "https://sigmasigma.org"


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

class FakeClock:
    """Callable time source that only moves when a test says so."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def mock_cloudinary_client():
    """
    An AsyncMock shaped like CloudinaryClient.

    Usage:
        mock_cloudinary_client.upload.return_value = {"public_id": "x"}
        service = UploadService(client=mock_cloudinary_client)
    """
    client = MagicMock()
    client.cloud_name = "test-cloud"
    client.api_key = "123456789"
    client.root_folders = AsyncMock(return_value=[])
    client.subfolders = AsyncMock(return_value=[])
    client.upload = AsyncMock()
    client.upload_large = AsyncMock()
    client.add_tag = AsyncMock(return_value={"public_ids": []})
    client.search = AsyncMock(return_value={"resources": [], "total_count": 0})
    client.sign = MagicMock(return_value=("signed-abc", 1700000000))
    return client


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def api_headers():
    return {"Origin": TEST_ORIGIN, "x-api-key": TEST_API_KEY}


@pytest_asyncio.fixture
async def test_client():
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from tapmedia.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
