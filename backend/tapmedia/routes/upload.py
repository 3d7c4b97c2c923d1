"""
TapMedia Backend — Upload Route Handlers
=========================================

What:  POST /api/upload (server-side upload with OCR tagging) and
       POST /api/sign-upload (signed parameters for direct browser uploads).
Who:   Called by the bulk uploader page.

Request Flow (POST /api/upload):
    1. Origin and API key checked by dependencies
    2. Multipart `file` streamed to the staging dir (size-limited)
    3. UploadService uploads to Cloudinary and indexes OCR tags
    4. Staged file removed in `finally`, success or failure
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from tapmedia.dependencies import require_api_key, require_upload_origin
from tapmedia.exceptions import ValidationError
from tapmedia.schemas.media import (
    ErrorResponse,
    SignUploadRequest,
    SignUploadResponse,
    UploadMetadata,
    UploadResponse,
)
from tapmedia.services.file_service import file_service
from tapmedia.services.upload_service import parse_tag_field, upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Upload"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"description": "Missing file or name", "model": ErrorResponse},
        401: {"description": "Invalid or missing API key", "model": ErrorResponse},
        403: {"description": "Origin not allowed", "model": ErrorResponse},
        502: {"description": "Cloudinary upload failed", "model": ErrorResponse},
    },
    dependencies=[Depends(require_upload_origin), Depends(require_api_key)],
    summary="Upload a media file to Cloudinary",
)
async def upload(
    file: Optional[UploadFile] = File(default=None, description="Image, audio, video or PDF"),
    name: Optional[str] = Form(default=None),
    tap_year: Optional[str] = Form(default=None, alias="tapYear"),
    folder: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None, description="JSON array or comma-separated"),
) -> UploadResponse:
    """
    Upload one file with its metadata.

    Images are uploaded with adv_ocr; the recognised names are attached to
    the asset as tags so the search page can find people in group photos.
    """
    if file is None or not file.filename:
        raise ValidationError(message="No file uploaded", field="file")

    staged_path: Optional[str] = None
    try:
        if not name or not name.strip():
            raise ValidationError(message="Missing metadata: name is required", field="name")

        staged_path, size = await file_service.stage_upload(file, file.filename)
        logger.info(
            "File received: %s (%s, %d bytes)",
            file.filename,
            file.content_type or "unknown type",
            size,
        )

        metadata = UploadMetadata(
            name=name.strip(),
            tap_year=tap_year or None,
            folder=folder or None,
            additional_tags=parse_tag_field(tags),
        )
        return await upload_service.upload_asset(
            file_path=staged_path,
            filename=file.filename,
            content_type=file.content_type,
            size=size,
            metadata=metadata,
        )
    finally:
        if staged_path:
            await file_service.cleanup_file(staged_path)
        await file.close()


@router.post(
    "/sign-upload",
    response_model=SignUploadResponse,
    responses={500: {"description": "Cloudinary credentials missing", "model": ErrorResponse}},
    summary="Sign parameters for a direct browser upload",
)
async def sign_upload(body: Optional[SignUploadRequest] = None) -> SignUploadResponse:
    return upload_service.sign_upload(body or SignUploadRequest())
