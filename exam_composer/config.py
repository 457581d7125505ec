"""Configuration management for the Exam Composer service.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The exam service URL must be provided via environment variables or
    .env file. Everything else has a working default.
    """

    # Exam service (external collaborator)
    exam_service_url: str = Field(
        ...,
        description="Base URL of the exam service, e.g. http://localhost:3001/api"
    )
    exam_service_token: Optional[str] = Field(
        default=None,
        description="Default bearer token for CLI submissions"
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Creation request timeout; unset keeps the HTTP client default"
    )

    # Form behaviour
    form_variant: str = Field(
        default="form_builder",
        description="Schema variant: form_builder (score >= 1) or simple (score >= 0)"
    )
    success_redirect_path: str = Field(
        default="/admin/exams",
        description="Where the user is sent after a successful submission"
    )
    generic_error_message: str = Field(
        default="Failed to create exam.",
        description="Shown when the exam service rejects a request without a message"
    )
    connection_error_message: str = Field(
        default="Could not reach the exam service. Check your connection.",
        description="Shown when the exam service cannot be reached"
    )
    max_open_drafts: int = Field(
        default=500,
        ge=1,
        description="Open form instances kept in memory before the oldest is evicted"
    )

    # Networking / logging
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated proxy IPs whose X-Forwarded-For is trusted"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("exam_service_url")
    @classmethod
    def validate_exam_service_url(cls, v: str) -> str:
        """Validate that the exam service URL is present and uses HTTP(S)."""
        if not v or not v.strip():
            raise ValueError("EXAM_SERVICE_URL must be set in environment variables")

        url = v.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError(
                "EXAM_SERVICE_URL must start with http:// or https:// "
                f"(got: {url[:20]}...)"
            )

        return url.rstrip("/")

    @field_validator("form_variant")
    @classmethod
    def validate_form_variant(cls, v: str) -> str:
        """Validate that the form variant is one of the known variants."""
        variant = v.strip().lower()
        if variant not in ("form_builder", "simple"):
            raise ValueError(
                f"FORM_VARIANT must be 'form_builder' or 'simple' (got: {v!r})"
            )
        return variant

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_request_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Validate that a configured timeout is positive."""
        if v is not None and v <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    return Settings()
