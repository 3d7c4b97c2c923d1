"""
TapMedia Backend — Upload Service (Business Logic Orchestrator)
================================================================

What:  Uploads a staged file to Cloudinary with metadata, then indexes OCR
       text from images as searchable tags. Also issues signed parameters for
       direct browser uploads.
How:   Composes CloudinaryClient and the OCR tag extractor.
Who:   POST /api/upload and POST /api/sign-upload.

Orchestration Flow (POST /api/upload):
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐
    │  Stage   │───▶│ Build options│───▶│  Cloudinary  │───▶│ OCR → tags   │
    │ (route)  │    │ (media kind) │    │  upload      │    │ (best-effort)│
    └──────────┘    └──────────────┘    └──────────────┘    └──────────────┘

    Upload failure → UpstreamError (502); the route still removes the temp file.
    Tagging failure → logged per label; the upload response is unaffected.
"""

import enum
import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from tapmedia.config import settings
from tapmedia.exceptions import UpstreamError, ValidationError
from tapmedia.schemas.media import (
    AssetMetadata,
    SignUploadRequest,
    SignUploadResponse,
    UploadMetadata,
    UploadResponse,
)
from tapmedia.services.cloudinary_client import CloudinaryClient, cloudinary_client
from tapmedia.services.ocr_tags import extract_ocr_text, extract_tags

logger = logging.getLogger(__name__)

# Marker tag on every asset whose OCR text has been indexed
OCR_INDEXED_TAG = "ocr_indexed"


class MediaKind(str, enum.Enum):
    IMAGE = "image"
    AUDIO = "audio"
    PDF = "pdf"
    VIDEO = "video"


def detect_media_kind(content_type: Optional[str], filename: str) -> MediaKind:
    """
    Classify an upload from its MIME type and filename.

    Anything that is not an image, audio or PDF is treated as video.
    """
    mime = (content_type or "").lower()
    if mime.startswith("image/"):
        return MediaKind.IMAGE
    if mime.startswith("audio/"):
        return MediaKind.AUDIO
    if mime == "application/pdf" or filename.lower().endswith(".pdf"):
        return MediaKind.PDF
    return MediaKind.VIDEO


def parse_tag_field(raw: Optional[str]) -> List[str]:
    """Parse the `tags` form field: a JSON array, or a comma-separated string."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return [str(t).strip() for t in parsed if str(t).strip()]
    return [t.strip() for t in raw.split(",") if t.strip()]


def make_public_id(stem: str) -> str:
    """`tap_<epoch-ms>_<stem>`: unique per upload, still readable in the console."""
    return f"tap_{int(time.time() * 1000)}_{stem}"


def build_upload_options(
    metadata: UploadMetadata,
    filename: str,
    kind: MediaKind,
) -> Dict[str, Any]:
    """
    Translate upload metadata into Cloudinary upload parameters.

    Only the asset name goes into tags by default; tapYear lives in the
    context metadata.
    """
    context = {"name": metadata.name}
    if metadata.tap_year:
        context["tapYear"] = metadata.tap_year

    options: Dict[str, Any] = {
        "public_id": make_public_id(Path(filename).stem),
        "context": context,
        "tags": [metadata.name],
        "timeout": settings.upload_timeout,
    }

    if kind is MediaKind.IMAGE:
        options["ocr"] = "adv_ocr"
    elif kind is MediaKind.AUDIO:
        # Cloudinary stores audio under the video resource type
        options["resource_type"] = "video"
        options["tags"].append("audio")
    elif kind is MediaKind.PDF:
        options["resource_type"] = "image"
        options["tags"].append("pdf")
    else:
        options["resource_type"] = "video"

    options["tags"].extend(metadata.additional_tags)

    if metadata.folder:
        options["folder"] = metadata.folder

    return options


class UploadService:
    """
    Business logic for getting media into Cloudinary.

    Args:
        client: Cloudinary facade (injected in tests).
    """

    def __init__(self, client: Optional[CloudinaryClient] = None):
        self.client = client or cloudinary_client

    async def upload_asset(
        self,
        file_path: str,
        filename: str,
        content_type: Optional[str],
        size: int,
        metadata: UploadMetadata,
    ) -> UploadResponse:
        """
        Upload one staged file and index its OCR text.

        Args:
            file_path:    Absolute path of the staged file
            filename:     Original client filename
            content_type: MIME type reported by the client
            size:         Staged byte count
            metadata:     Validated form metadata

        Returns:
            UploadResponse describing the stored asset.

        Raises:
            ValidationError: name is blank
            ConfigError:     Cloudinary credentials missing
            UpstreamError:   Cloudinary rejected the upload
        """
        if not metadata.name.strip():
            raise ValidationError(message="Missing metadata: name is required", field="name")

        kind = detect_media_kind(content_type, filename)
        options = build_upload_options(metadata, filename, kind)
        size_mb = size / (1024 * 1024)

        logger.info(
            "Uploading %s as %s (%.2f MB) public_id=%s folder=%s",
            filename,
            kind.value,
            size_mb,
            options["public_id"],
            options.get("folder") or "<root>",
        )

        try:
            if size > settings.large_upload_threshold:
                options["timeout"] = settings.large_upload_timeout
                result = await self.client.upload_large(file_path, **options)
            else:
                result = await self.client.upload(file_path, **options)
        except UpstreamError as e:
            raise UpstreamError(
                message=f"Cloudinary upload failed: {e.message}",
                status_code=e.status_code,
                context=e.context,
            ) from e

        public_id = result.get("public_id") or options["public_id"]
        logger.info("Upload successful: %s", public_id)

        ocr_text = ""
        ocr_tags: List[str] = []
        if kind is MediaKind.IMAGE:
            ocr_text = extract_ocr_text(result)
            if ocr_text:
                ocr_tags = await self.tag_with_ocr(public_id, ocr_text)
        else:
            logger.debug("Skipping OCR processing for %s upload", kind.value)

        context = result.get("context") or {"custom": {"name": metadata.name}}
        return UploadResponse(
            public_id=public_id,
            secure_url=result.get("secure_url"),
            name=metadata.name,
            ocr_text=ocr_text,
            ocr_tags=ocr_tags,
            tags=result.get("tags") or [metadata.name],
            context=context,
            metadata=AssetMetadata(
                width=result.get("width"),
                height=result.get("height"),
                format=result.get("format"),
                bytes=result.get("bytes"),
                created_at=result.get("created_at"),
            ),
        )

    async def tag_with_ocr(self, public_id: str, ocr_text: str) -> List[str]:
        """
        Attach OCR-derived labels to an asset.

        Each label (the `ocr_indexed` marker first) is attached independently.
        A failed label is logged and skipped. Never raises.

        Returns:
            The labels derived from the text.
        """
        tags = extract_tags(ocr_text)
        if not tags:
            logger.info("No OCR tags to add for %s", public_id)
            return []

        attached = 0
        for tag in [OCR_INDEXED_TAG, *tags]:
            try:
                await self.client.add_tag(tag, public_id)
                attached += 1
            except UpstreamError as e:
                logger.warning("Failed to add tag '%s' to %s: %s", tag, public_id, e.message)

        logger.info("Attached %d/%d OCR tags to %s", attached, len(tags) + 1, public_id)
        return tags

    def sign_upload(self, request: SignUploadRequest) -> SignUploadResponse:
        """
        Produce signed parameters for a direct browser → Cloudinary upload.

        Large files go straight to Cloudinary with these, bypassing this
        server's request size limits. `resource_type` is part of the upload
        URL, so it is returned but not signed.

        Raises:
            ConfigError: Cloudinary credentials missing
        """
        name = request.name or ""
        public_id = make_public_id(re.sub(r"\s+", "_", request.name or "upload"))
        tags = [t for t in (name, "audio" if request.is_audio else None) if t]

        signed_params: Dict[str, Any] = {
            "public_id": public_id,
            "context": f"name={name}",
            "tags": ",".join(tags),
        }
        if request.folder:
            signed_params["folder"] = request.folder

        signature, timestamp = self.client.sign(signed_params)
        logger.info("Signed direct upload for public_id=%s", public_id)

        return SignUploadResponse(
            signature=signature,
            timestamp=timestamp,
            public_id=public_id,
            cloud_name=self.client.cloud_name,
            api_key=self.client.api_key,
            upload_params={**signed_params, "tags": tags, "resource_type": "video"},
        )


# ── Singleton Instance ────────────────────────────────────────────────────
upload_service = UploadService()
