"""
TapMedia Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads environment variables (or a .env file),
       coerces and range-checks them, and exposes a singleton `settings`.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; checked again during startup.

Credential handling:
    The three Cloudinary credentials and the uploader API key default to
    empty strings so the process can start (and answer /health) without
    them. Operations that need a credential call
    `require_cloudinary_credentials()` and fail with ConfigError.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from tapmedia.exceptions import ConfigError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments must set
    the Cloudinary credentials and UPLOADER_API_KEY.
    """

    # ── Cloudinary ────────────────────────────────────────────────────────
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_api_key: str = Field(default="", description="Cloudinary API key")
    cloudinary_api_secret: str = Field(default="", description="Cloudinary API secret")

    # Permanent CDN host used to build PDF download URLs
    cdn_base_url: str = Field(default="https://res.cloudinary.com")

    # ── Access Control ────────────────────────────────────────────────────
    # Shared key the embedded pages send as ?key= or x-api-key
    uploader_api_key: str = Field(default="")

    # Comma-separated. Referer must start with one of these, or Origin equal one.
    allowed_origins: str = Field(
        default=(
            "https://www.sigmasigma.org,https://sigmasigma.org,"
            "http://localhost,http://localhost:3000"
        )
    )

    cors_origins: str = Field(default="*")

    @property
    def allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ── Folder Cache ──────────────────────────────────────────────────────
    # Seconds a folder listing stays fresh (24 hours)
    folder_cache_ttl: float = Field(default=86_400, gt=0)

    # ── Uploads ───────────────────────────────────────────────────────────
    # 500MB hard limit per uploaded file
    max_upload_size: int = Field(default=524_288_000, ge=1_048_576)

    # Above 100MB the chunked upload API is used
    large_upload_threshold: int = Field(default=104_857_600, ge=1_048_576)

    upload_tmp_dir: str = Field(default="./tmp/uploads")

    # Seconds the SDK waits for a regular / chunked upload
    upload_timeout: int = Field(default=120, ge=10)
    large_upload_timeout: int = Field(default=300, ge=30)

    # ── Pages ─────────────────────────────────────────────────────────────
    uploader_page: str = Field(default="./squarespace-uploader.html")
    version_file: str = Field(default="./version.json")

    # ── PDF Proxy ─────────────────────────────────────────────────────────
    pdf_download_timeout: float = Field(default=60.0, gt=0)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Retry Configuration ───────────────────────────────────────────────
    # Tenacity settings for Cloudinary API calls (exponential backoff + jitter)
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=1, ge=0, le=30)
    retry_max_wait: int = Field(default=10, ge=1, le=120)

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def missing_cloudinary_credentials(self) -> List[str]:
        """Environment variable names of the Cloudinary credentials that are unset."""
        missing = []
        if not self.cloudinary_cloud_name:
            missing.append("CLOUDINARY_CLOUD_NAME")
        if not self.cloudinary_api_key:
            missing.append("CLOUDINARY_API_KEY")
        if not self.cloudinary_api_secret:
            missing.append("CLOUDINARY_API_SECRET")
        return missing

    def require_cloudinary_credentials(self) -> None:
        """
        Raise ConfigError unless all three Cloudinary credentials are set.

        Called lazily by the Cloudinary client before its first SDK call.
        """
        missing = self.missing_cloudinary_credentials()
        if missing:
            raise ConfigError(
                message=f"Missing Cloudinary environment variables: {', '.join(missing)}",
                missing=missing,
            )

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError listing them.
        """
        errors = []
        missing = self.missing_cloudinary_credentials()
        if missing:
            errors.append(f"{', '.join(missing)} not set; Cloudinary routes will fail")
        if not self.uploader_api_key:
            errors.append("UPLOADER_API_KEY is not set; protected routes will answer 500")
        if self.large_upload_threshold > self.max_upload_size:
            errors.append("LARGE_UPLOAD_THRESHOLD exceeds MAX_UPLOAD_SIZE")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()
