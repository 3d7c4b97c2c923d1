"""
TapMedia Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn tapmedia.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐         │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│ CORS │         │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘         │
    │                                                      │
    │  Routes:                                             │
    │  /api/folders  /api/upload  /api/sign-upload         │
    │  /api/search   /api/download-pdf                     │
    │  /api/uploader /api/version  /health                 │
    │                                                      │
    │  Exception Handlers:                                 │
    │  Validation→400 │ Auth→401 │ Origin→403              │
    │  Config→500 │ Storage→500 │ Upstream→502             │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, never fatal)
    3. Create the upload staging directory
    Shutdown:
    1. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from tapmedia import __version__
from tapmedia.config import settings
from tapmedia.exceptions import (
    AuthenticationError,
    ConfigError,
    FileStorageError,
    OriginNotAllowedError,
    TapMediaError,
    UpstreamError,
    ValidationError,
)
from tapmedia.middleware.logging import RequestLoggingMiddleware
from tapmedia.middleware.request_id import RequestIDMiddleware, request_id_var
from tapmedia.routes import downloads, folders, health, pages, search, upload

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Third-party chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup logs configuration problems instead of exiting, so /health and
    /api/version keep answering while an operator fixes the environment.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("TapMedia Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    staging = Path(settings.upload_tmp_dir)
    staging.mkdir(parents=True, exist_ok=True)
    logger.info("Upload staging directory: %s", staging.resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("Folder cache TTL: %ds", settings.folder_cache_ttl)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("TapMedia Backend shutting down...")
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, exc: TapMediaError, details=None) -> JSONResponse:
    content = {
        "error": error,
        "message": exc.message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError        → 400 Bad Request
        AuthenticationError    → 401 Unauthorized
        OriginNotAllowedError  → 403 Forbidden
        ConfigError            → 500 (names the missing settings, never values)
        FileStorageError       → 500
        UpstreamError          → 502 Bad Gateway
        TapMediaError (base)   → 500
        Exception (fallback)   → 500, stack trace logged server-side only
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.warning("[%s] Rejected request to %s: bad API key", request_id_var.get(""), request.url.path)
        return _error_response(401, "authentication_error", exc)

    @app.exception_handler(OriginNotAllowedError)
    async def handle_origin_error(request: Request, exc: OriginNotAllowedError):
        logger.warning(
            "[%s] Rejected request to %s from origin %s",
            request_id_var.get(""),
            request.url.path,
            exc.context.get("origin") or exc.context.get("referer") or "unknown",
        )
        return _error_response(403, "origin_not_allowed", exc)

    @app.exception_handler(ConfigError)
    async def handle_config_error(request: Request, exc: ConfigError):
        logger.error("[%s] Configuration error: %s (missing: %s)", request_id_var.get(""), exc.message, exc.missing)
        return _error_response(500, "config_error", exc, {"missing": exc.missing} if exc.missing else None)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc)

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        logger.error("[%s] Upstream error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(502, "upstream_error", exc)

    @app.exception_handler(TapMediaError)
    async def handle_tapmedia_error(request: Request, exc: TapMediaError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="TapMedia API",
        description=(
            "Media backend for the TAP website: Cloudinary uploads with OCR name "
            "tagging, folder listing, tag search, signed uploads and PDF downloads."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added executes first: RequestID → Logging → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "x-api-key", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(folders.router)
    app.include_router(upload.router)
    app.include_router(search.router)
    app.include_router(downloads.router)
    app.include_router(pages.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
