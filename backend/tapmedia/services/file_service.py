"""
TapMedia Backend — Upload Staging Service
==========================================

What:  Streams an incoming multipart file to a temp staging directory,
       enforcing the size limit, and removes it once the upload is done.
How:   Async chunked copy (aiofiles) into a UUID-named file, so no user
       input ever reaches the file system path.
Who:   Called by the upload route before handing the path to UploadService.

Lifecycle of a staged file:
    1. Route receives UploadFile → FileService.stage_upload()
    2. Chunks are copied to <UPLOAD_TMP_DIR>/<uuid><ext>, counting bytes
    3. Size limit exceeded → partial file removed, ValidationError
    4. Cloudinary upload runs against the staged path
    5. cleanup_file() removes the staged file (always, success or failure)
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Protocol, Tuple

import aiofiles

from tapmedia.config import settings
from tapmedia.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# Bytes read from the incoming upload per iteration (1MB)
CHUNK_SIZE = 1024 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


class FileService:
    """
    Manages the temp-file lifecycle of uploads.

    Args:
        staging_root: Override the staging directory (used in tests).
        max_size:     Override the per-file byte limit (used in tests).
    """

    def __init__(self, staging_root: Optional[str] = None, max_size: Optional[int] = None):
        self.staging_root = Path(staging_root or settings.upload_tmp_dir).resolve()
        self.max_size = max_size or settings.max_upload_size

    def _staging_path(self, filename: str) -> Path:
        extension = Path(filename).suffix.lower()
        return self.staging_root / f"{uuid.uuid4()}{extension}"

    async def stage_upload(self, source: AsyncReadable, filename: str) -> Tuple[str, int]:
        """
        Copy an upload stream to disk.

        Args:
            source:   Object with an async `read(size)` (Starlette UploadFile).
            filename: Client filename; only its extension is kept.

        Returns:
            Tuple of (absolute staged path, byte count).

        Raises:
            ValidationError:  file is empty or larger than the limit
            FileStorageError: the staging directory or file could not be written
        """
        path = self._staging_path(filename)
        size = 0

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as out:
                while True:
                    chunk = await source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_size:
                        break
                    await out.write(chunk)
        except OSError as e:
            logger.error("Failed to stage upload at %s: %s", path, str(e))
            await self.cleanup_file(str(path))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"os_error": str(e)},
            )

        if size > self.max_size:
            await self.cleanup_file(str(path))
            max_mb = self.max_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb},
            )

        if size == 0:
            await self.cleanup_file(str(path))
            raise ValidationError(message="No file uploaded (file is empty)", field="file")

        logger.info("Upload staged: %s (%.2f MB)", path.name, size / (1024 * 1024))
        return str(path), size

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a staged file if it still exists.

        Best-effort: failures are logged and never raised.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.debug("Temp file cleaned up: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up temp file %s: %s", file_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
