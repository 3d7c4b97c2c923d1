"""
TapMedia Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each failure the proxy can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py map each class to an HTTP
       status code and a structured JSON body.
Who:   Raised by services and access dependencies; caught by global handlers.

Exception Hierarchy:
    TapMediaError (base)
    ├── ValidationError         → 400 Bad Request
    ├── AuthenticationError     → 401 Unauthorized
    ├── OriginNotAllowedError   → 403 Forbidden
    ├── ConfigError             → 500 Internal Server Error
    ├── FileStorageError        → 500 Internal Server Error
    └── UpstreamError           → 502 Bad Gateway

The OCR tag extractor has no entry here: it degrades to an empty list
instead of raising.
"""

from typing import Any, Dict, List, Optional


class TapMediaError(Exception):
    """
    Base exception for all TapMedia application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where harmless)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TapMediaError):
    """
    Raised when client input fails validation.

    When:    Missing name on upload, missing publicId on PDF download,
             empty or oversized file, malformed identifiers.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(TapMediaError):
    """API key missing from the request or not matching UPLOADER_API_KEY (401)."""

    def __init__(
        self,
        message: str = "Unauthorized: Invalid or missing API key",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OriginNotAllowedError(TapMediaError):
    """Referer/Origin headers do not match any allowed origin (403)."""

    def __init__(
        self,
        message: str = "Access denied - invalid origin",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigError(TapMediaError):
    """
    Raised when a required setting is absent.

    What:    The server cannot fulfil the request because it was deployed
             without a credential it needs (Cloudinary keys, uploader key).
    HTTP:    500 Internal Server Error

    Attributes:
        missing: Environment variable names that were not set.
    """

    def __init__(
        self,
        message: str = "Server configuration error",
        missing: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if missing:
            ctx["missing"] = list(missing)
        super().__init__(message=message, context=ctx)
        self.missing = list(missing or [])


class FileStorageError(TapMediaError):
    """
    Raised when local file system operations fail.

    When:    Staging an upload to the temp directory failed, or the uploader
             page could not be read.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamError(TapMediaError):
    """
    Raised when Cloudinary (API or CDN) fails or returns unusable data.

    What:    Network failure, error reply, or malformed payload from upstream,
             after any retries have been exhausted.
    HTTP:    502 Bad Gateway

    Callers that can degrade (the folder listing) catch this and answer with
    an explicit error body instead of an empty success.

    Attributes:
        status_code: HTTP status reported by upstream, when there was one.
    """

    def __init__(
        self,
        message: str = "The media service is temporarily unavailable",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code:
            ctx["upstream_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
