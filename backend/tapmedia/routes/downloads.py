"""
TapMedia Backend — PDF Download Route
======================================

What:  POST /api/download-pdf streams a stored PDF back as an attachment.
How:   PdfService opens a streaming CDN request; this handler either passes
       a non-200 status through as JSON or streams the body. The stream
       closes the upstream connection itself when it finishes or is dropped.
"""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse

from tapmedia.schemas.media import DownloadPdfRequest, ErrorResponse
from tapmedia.services.pdf_service import content_disposition, pdf_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Downloads"])


@router.post(
    "/download-pdf",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "The PDF file"},
        400: {"description": "cloudName/publicId missing or invalid", "model": ErrorResponse},
        502: {"description": "CDN unreachable", "model": ErrorResponse},
    },
    summary="Download a PDF through the CDN proxy",
)
async def download_pdf(body: Optional[DownloadPdfRequest] = None):
    body = body or DownloadPdfRequest()
    stream = await pdf_service.open_pdf_stream(body.cloud_name, body.public_id)

    if stream.status_code != 200:
        return JSONResponse(
            status_code=stream.status_code,
            content={"error": f"Failed to fetch PDF: {stream.status_code}"},
        )

    return StreamingResponse(
        stream.iter_and_close(),
        media_type="application/pdf",
        headers={
            "Content-Disposition": content_disposition(body.file_name),
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )
