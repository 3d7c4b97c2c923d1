"""
TapMedia Backend — Cloudinary API Client
=========================================

What:  Thin async facade over the official `cloudinary` Python SDK.
How:   Configures the SDK lazily from settings, runs each blocking SDK call in
       Starlette's threadpool, retries transient failures with tenacity, and
       translates every SDK failure into UpstreamError.
Who:   Used by FolderLister, UploadService and SearchService.

Resilience Strategy:
    1. Credentials are checked before the first call. Missing ones raise
       ConfigError naming each absent environment variable.
    2. GeneralError / RateLimited / connection errors are retried with
       exponential backoff + jitter (RETRY_MAX_ATTEMPTS attempts).
    3. Non-transient errors (NotFound, AuthorizationRequired, BadRequest) fail
       immediately with a hint about which setting to check.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

import cloudinary
import cloudinary.api
import cloudinary.uploader
import cloudinary.utils
from cloudinary import exceptions as cloudinary_exceptions
from cloudinary.search import Search
from starlette.concurrency import run_in_threadpool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from tapmedia.config import settings
from tapmedia.exceptions import TapMediaError, UpstreamError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    cloudinary_exceptions.GeneralError,
    cloudinary_exceptions.RateLimited,
    ConnectionError,
    TimeoutError,
)

# Chunk size for the chunked upload API (20MB)
LARGE_UPLOAD_CHUNK_SIZE = 20 * 1024 * 1024


class CloudinaryClient:
    """
    Async wrapper around the Cloudinary Admin, Upload and Search APIs.

    Every public method either returns plain dicts/lists or raises one of:
        ConfigError:   credentials absent (raised before any network traffic)
        UpstreamError: Cloudinary failed after retries or replied with junk
    """

    def __init__(self):
        self._configured = False

    @property
    def cloud_name(self) -> str:
        return settings.cloudinary_cloud_name

    @property
    def api_key(self) -> str:
        return settings.cloudinary_api_key

    def is_configured(self) -> bool:
        return not settings.missing_cloudinary_credentials()

    def _ensure_configured(self) -> None:
        settings.require_cloudinary_credentials()
        if self._configured:
            return
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
        self._configured = True
        logger.info("Cloudinary SDK configured for cloud %s", settings.cloudinary_cloud_name)

    # ── Admin API: folders ────────────────────────────────────────────────

    async def root_folders(self) -> List[Dict[str, Any]]:
        """List top-level folders as `{name, path}` dicts."""
        response = await self._invoke("root_folders", cloudinary.api.root_folders)
        return self._folders_from(response, "root_folders")

    async def subfolders(self, path: str) -> List[Dict[str, Any]]:
        """List the direct children of `path` as `{name, path}` dicts."""
        response = await self._invoke("subfolders", cloudinary.api.subfolders, path)
        return self._folders_from(response, "subfolders")

    @staticmethod
    def _folders_from(response: Any, operation: str) -> List[Dict[str, Any]]:
        folders = response.get("folders") if hasattr(response, "get") else None
        if not isinstance(folders, list) or not all(
            isinstance(f, dict) and isinstance(f.get("name"), str) for f in folders
        ):
            raise UpstreamError(
                message="Cloudinary returned a malformed folder listing",
                context={"operation": operation},
            )
        return folders

    # ── Upload API ────────────────────────────────────────────────────────

    async def upload(self, file_path: str, **options: Any) -> Dict[str, Any]:
        return await self._invoke("upload", cloudinary.uploader.upload, file_path, **options)

    async def upload_large(self, file_path: str, **options: Any) -> Dict[str, Any]:
        """Chunked upload for files above LARGE_UPLOAD_THRESHOLD."""
        options.setdefault("chunk_size", LARGE_UPLOAD_CHUNK_SIZE)
        return await self._invoke(
            "upload_large", cloudinary.uploader.upload_large, file_path, **options
        )

    async def add_tag(self, tag: str, public_id: str, **options: Any) -> Dict[str, Any]:
        return await self._invoke(
            "add_tag", cloudinary.uploader.add_tag, tag, [public_id], **options
        )

    # ── Search API ────────────────────────────────────────────────────────

    async def search(
        self,
        expression: str,
        max_results: int,
        next_cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        def _execute() -> Dict[str, Any]:
            query = Search().expression(expression).max_results(max_results)
            if next_cursor:
                query = query.next_cursor(next_cursor)
            return query.execute()

        return await self._invoke("search", _execute)

    # ── Signing ───────────────────────────────────────────────────────────

    def sign(self, params: Dict[str, Any]) -> Tuple[str, int]:
        """
        Sign upload parameters for a direct browser upload.

        Adds the current UNIX timestamp to the signed set and returns
        `(signature, timestamp)`. Pure local computation, no network call.
        """
        self._ensure_configured()
        timestamp = int(time.time())
        signed = dict(params, timestamp=timestamp)
        signature = cloudinary.utils.api_sign_request(signed, settings.cloudinary_api_secret)
        return signature, timestamp

    # ── Invocation plumbing ───────────────────────────────────────────────

    async def _invoke(self, operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run one SDK call with configuration, retries and error translation.

        Raises:
            ConfigError: credentials missing
            UpstreamError: any SDK or transport failure
        """
        self._ensure_configured()
        call_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            result = await self._call_with_retry(func, *args, **kwargs)
        except TapMediaError:
            raise
        except cloudinary_exceptions.NotFound as e:
            raise UpstreamError(
                message=(
                    "Cloudinary API 404 - check that CLOUDINARY_CLOUD_NAME is correct "
                    f"(currently: \"{settings.cloudinary_cloud_name}\"). Full error: {e}"
                ),
                status_code=404,
                context={"operation": operation, "call_id": call_id},
            ) from e
        except cloudinary_exceptions.AuthorizationRequired as e:
            raise UpstreamError(
                message=(
                    "Cloudinary authentication failed - check that CLOUDINARY_API_KEY and "
                    f"CLOUDINARY_API_SECRET are correct. Full error: {e}"
                ),
                status_code=401,
                context={"operation": operation, "call_id": call_id},
            ) from e
        except Exception as e:
            logger.error(
                "[%s] Cloudinary %s failed: %s",
                call_id,
                operation,
                str(e),
                exc_info=not isinstance(e, cloudinary_exceptions.Error),
            )
            raise UpstreamError(
                message=f"Cloudinary {operation} failed: {e}",
                context={"operation": operation, "call_id": call_id, "error_type": type(e).__name__},
            ) from e

        logger.debug(
            "[%s] Cloudinary %s completed in %.0fms",
            call_id,
            operation,
            (time.time() - start_time) * 1000,
        )
        return result

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_with_retry(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return await run_in_threadpool(func, *args, **kwargs)


# ── Singleton Instance ────────────────────────────────────────────────────
cloudinary_client = CloudinaryClient()
