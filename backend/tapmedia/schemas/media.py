"""
TapMedia Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the contract between the embedded pages and
       this backend.
How:   FastAPI validates request bodies against these models and serializes
       responses through them (by alias, so the pages keep receiving the
       camelCase keys they already read).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    """Accepts both snake_case and the pages' camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ══════════════════════════════════════════════════════════════════════════
# Folders
# ══════════════════════════════════════════════════════════════════════════


class FolderRecord(_WireModel):
    """
    One Cloudinary folder.

    path:          Full `/`-delimited folder path (unique within a listing)
    display_name:  Last path segment, shown in the folder picker
    """

    path: str = Field(description="Full folder path, e.g. 'events/2023/formal'")
    display_name: str = Field(
        serialization_alias="displayName",
        validation_alias="displayName",
        description="Last segment of the path",
    )

    @classmethod
    def from_path(cls, path: str) -> "FolderRecord":
        return cls(path=path, displayName=path.rsplit("/", 1)[-1])


class FolderListResponse(BaseModel):
    """
    Returned by GET /api/folders.

    On upstream failure `success` is False, `error` is set, and `folders`
    is empty. An empty listing with `success` True means "no folders".
    """

    success: bool
    folders: List[FolderRecord] = Field(default_factory=list)
    error: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Uploads
# ══════════════════════════════════════════════════════════════════════════


class UploadMetadata(BaseModel):
    """Form metadata accompanying an uploaded file."""

    name: str
    tap_year: Optional[str] = None
    folder: Optional[str] = None
    additional_tags: List[str] = Field(default_factory=list)


class AssetMetadata(_WireModel):
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    bytes: Optional[int] = None
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")


class UploadResponse(_WireModel):
    """
    Returned by POST /api/upload.

    ocr_text is empty for non-image uploads; ocr_tags lists the labels that
    were derived from it (whether or not every label attached successfully).
    """

    success: bool = True
    public_id: str = Field(serialization_alias="publicId")
    secure_url: Optional[str] = Field(default=None, serialization_alias="secureUrl")
    name: str
    ocr_text: str = Field(default="", serialization_alias="ocrText")
    ocr_tags: List[str] = Field(default_factory=list, serialization_alias="ocrTags")
    tags: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
    metadata: AssetMetadata


class SignUploadRequest(_WireModel):
    folder: Optional[str] = None
    name: Optional[str] = None
    is_audio: bool = Field(default=False, alias="isAudio")


class SignUploadResponse(_WireModel):
    """Everything the browser needs to POST directly to Cloudinary."""

    success: bool = True
    signature: str
    timestamp: int
    public_id: str
    cloud_name: str = Field(serialization_alias="cloudName")
    api_key: str = Field(serialization_alias="apiKey")
    upload_params: Dict[str, Any] = Field(serialization_alias="uploadParams")


# ══════════════════════════════════════════════════════════════════════════
# PDF Download
# ══════════════════════════════════════════════════════════════════════════


class DownloadPdfRequest(_WireModel):
    cloud_name: Optional[str] = Field(default=None, alias="cloudName")
    public_id: Optional[str] = Field(default=None, alias="publicId")
    file_name: Optional[str] = Field(default=None, alias="fileName")


# ══════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════


class SearchParams(BaseModel):
    """
    Search parameters, from the query string (GET) or JSON body (POST).

    max_results defaults to 30 and is capped at 100 by SearchService.
    """

    q: str = ""
    next_cursor: Optional[str] = None
    max_results: Optional[int] = None
    folder: Optional[str] = None


class SearchResult(BaseModel):
    asset_id: Optional[str] = None
    public_id: str
    secure_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    resource_type: Optional[str] = None
    created_at: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    bytes: Optional[int] = None
    duration: Optional[float] = None
    type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    alt: Optional[str] = None
    caption: Optional[str] = None
    description: Optional[str] = None


class SearchResponse(BaseModel):
    results: List[SearchResult]
    next_cursor: Optional[str] = None
    total_count: int


# ══════════════════════════════════════════════════════════════════════════
# Errors & Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "authentication_error",
            "message": "Unauthorized: Invalid or missing API key",
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall status: ok or degraded")
    timestamp: str = Field(description="Server time (UTC ISO 8601)")
    version: str
    cloudinary: str = Field(description="Credential state: configured, unconfigured")
    folder_cache: str = Field(description="Folder cache state: warm, cold")
    uptime_seconds: float
