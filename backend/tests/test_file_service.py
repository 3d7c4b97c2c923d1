"""
TapMedia Backend — File Service Unit Tests
===========================================

What:  Tests for staging uploads on disk (size limit, empty files, cleanup).
How:   A tiny in-memory async reader and pytest's tmp_path.

Test Strategy:
    ✅ Staged file keeps only the client's extension
    ✅ Size limit enforced while streaming; partial file removed
    ✅ Empty uploads rejected
    ✅ Cleanup is best-effort
"""

import io
from pathlib import Path
from unittest.mock import patch

import pytest

from tapmedia.exceptions import FileStorageError, ValidationError
from tapmedia.services.file_service import FileService


class FakeUpload:
    """Async `read(size)` over bytes, like Starlette's UploadFile."""

    def __init__(self, content: bytes):
        self._buffer = io.BytesIO(content)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


class TestStageUpload:

    @pytest.mark.asyncio
    async def test_stages_content(self, tmp_path, sample_image_bytes):
        service = FileService(staging_root=str(tmp_path))

        path, size = await service.stage_upload(FakeUpload(sample_image_bytes), "../../team.JPG")

        staged = Path(path)
        assert staged.parent == tmp_path.resolve()
        assert staged.suffix == ".jpg"
        assert staged.read_bytes() == sample_image_bytes
        assert size == len(sample_image_bytes)

    @pytest.mark.asyncio
    async def test_file_at_limit_accepted(self, tmp_path):
        service = FileService(staging_root=str(tmp_path), max_size=1_048_576)

        _, size = await service.stage_upload(FakeUpload(b"x" * 1_048_576), "a.bin")

        assert size == 1_048_576

    @pytest.mark.asyncio
    async def test_oversize_rejected_and_removed(self, tmp_path):
        service = FileService(staging_root=str(tmp_path), max_size=1_048_576)

        with pytest.raises(ValidationError, match="exceeds maximum"):
            await service.stage_upload(FakeUpload(b"x" * (1_048_576 + 1)), "a.bin")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, tmp_path):
        service = FileService(staging_root=str(tmp_path))

        with pytest.raises(ValidationError, match="empty"):
            await service.stage_upload(FakeUpload(b""), "a.jpg")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_os_error_becomes_file_storage_error(self, tmp_path):
        service = FileService(staging_root=str(tmp_path))

        with patch('aiofiles.open', side_effect=OSError("disk full")):
            with pytest.raises(FileStorageError):
                await service.stage_upload(FakeUpload(b"data"), "a.jpg")


class TestCleanup:

    def setup_method(self):
        self.service = FileService()

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, tmp_path):
        test_file = tmp_path / "test.jpg"
        test_file.write_bytes(b"test content")

        await self.service.cleanup_file(str(test_file))
        assert not test_file.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, tmp_path):
        # Should not raise
        await self.service.cleanup_file(str(tmp_path / "nonexistent.jpg"))
