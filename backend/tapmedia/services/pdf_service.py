"""
TapMedia Backend — PDF Download Proxy
======================================

What:  Streams a PDF from Cloudinary's CDN back to the browser as an
       attachment.
How:   Builds the permanent CDN URL from cloud name + public id (the
       time-limited secure_url answers 401 once it expires) and proxies the
       body with httpx in streaming mode.
Who:   POST /api/download-pdf.

Stream ownership:
    open_pdf_stream() returns an open upstream response. The caller iterates
    `iter_and_close()`, which releases the response and its client when the
    body is exhausted or the iteration is abandoned (client disconnect).
"""

import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from urllib.parse import quote

import httpx

from tapmedia.config import settings
from tapmedia.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PDF_NAME = "document.pdf"

_CLOUD_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def build_pdf_url(cloud_name: str, public_id: str) -> str:
    """
    Permanent CDN URL for an image-type asset.

    Raises:
        ValidationError: the identifiers could escape the asset path
    """
    if not _CLOUD_NAME.match(cloud_name):
        raise ValidationError(message="Invalid cloudName", field="cloudName")
    if public_id.startswith("/") or ".." in public_id.split("/"):
        raise ValidationError(message="Invalid publicId", field="publicId")
    return f"{settings.cdn_base_url.rstrip('/')}/{cloud_name}/image/upload/{public_id}"


def content_disposition(file_name: Optional[str]) -> str:
    return f'attachment; filename="{quote(file_name or DEFAULT_PDF_NAME, safe="")}"'


@dataclass
class PdfStream:
    """An open CDN response plus the client that owns it."""

    status_code: int
    response: httpx.Response
    client: httpx.AsyncClient

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_bytes()

    async def iter_and_close(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        finally:
            await self.close()

    async def close(self) -> None:
        await self.response.aclose()
        await self.client.aclose()


class PdfService:
    """
    Args:
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def open_pdf_stream(self, cloud_name: Optional[str], public_id: Optional[str]) -> PdfStream:
        """
        Start fetching a PDF from the CDN.

        `cloud_name` falls back to the configured cloud. A non-200 CDN status
        is returned (stream already closed) for the caller to pass through.

        Raises:
            ValidationError: publicId missing, or no cloud name available
            UpstreamError:   CDN unreachable
        """
        cloud = cloud_name or settings.cloudinary_cloud_name
        if not cloud or not public_id:
            raise ValidationError(message="cloudName and publicId are required")

        url = build_pdf_url(cloud, public_id)
        logger.info("PDF download request for: %s", url)

        client = httpx.AsyncClient(
            transport=self.transport,
            timeout=settings.pdf_download_timeout,
            follow_redirects=True,
        )
        try:
            request = client.build_request("GET", url)
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            logger.error("CDN request failed for %s: %s", url, str(e))
            raise UpstreamError(
                message=f"Failed to fetch PDF: {e}",
                context={"url": url, "error_type": type(e).__name__},
            ) from e

        stream = PdfStream(status_code=response.status_code, response=response, client=client)
        if response.status_code != 200:
            logger.error("Cloudinary CDN response error: %d for %s", response.status_code, url)
            await stream.close()
        return stream


pdf_service = PdfService()
