"""Core configuration module for figurine-service.

Loads settings from FIGURINE_* prefixed environment variables using Pydantic
Settings. A handful of fields also accept the bare names used by earlier
deployments (GOOGLE_API_KEY, GEMINI_MODEL, GEMINI_TIMEOUT_MS, RATE_LIMIT_MAX,
ALLOWED_ORIGINS, PORT).

Settings are read ONCE per process via get_settings(). The generation core
never touches the environment; it receives a GenerationConfig built from
these values.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.constants import (
    DEFAULT_ENVIRONMENT,
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MODEL,
    DEFAULT_PORT,
    DEFAULT_RATE_LIMIT_MAX,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_SERVICE_NAME,
    DEFAULT_STATIC_DIR,
    DEFAULT_TIMEOUT_MS,
    FALLBACK_IMAGE_MODEL,
    MAX_UPLOAD_BYTES,
)


class Settings(BaseSettings):
    """Application settings loaded from FIGURINE_* environment variables.

    Example: FIGURINE_PORT=8080, FIGURINE_LOG_LEVEL=DEBUG

    Attributes:
        service_name: Service identifier for logging.
        port: HTTP port (1-65535). Default: 3000.
        host: Bind address. Default: 0.0.0.0.
        environment: Deployment environment. Default: development.
        log_level: Logging verbosity. Default: INFO.
        google_api_key: Model provider credential. Empty enables demo mode.
        gemini_model: Optional override for the first model candidate.
        gemini_base_url: Provider REST base URL.
        gemini_timeout_ms: Per-attempt deadline in milliseconds.
        rate_limit_max: Generate requests allowed per client per window.
        rate_limit_window_seconds: Rate limit window length.
        allowed_origins: Comma-separated CORS allow-list. Empty = open.
        max_upload_bytes: Upload size ceiling.
        tracing_enabled: Configure OpenTelemetry at startup.
        otlp_endpoint: Optional OTLP gRPC exporter endpoint.
        static_dir: Directory with the browser form.
    """

    # =========================================================================
    # Core Settings
    # =========================================================================
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name for identification",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("FIGURINE_PORT", "PORT"),
        description="HTTP server port",
    )
    host: str = Field(
        default=DEFAULT_HOST,
        description="HTTP server bind address",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default=DEFAULT_ENVIRONMENT,
        description="Deployment environment",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Model Provider
    # =========================================================================
    google_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("FIGURINE_GOOGLE_API_KEY", "GOOGLE_API_KEY"),
        description="Gemini API key; empty string enables demo mode",
    )
    gemini_model: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FIGURINE_GEMINI_MODEL", "GEMINI_MODEL"),
        description="Model tried before the built-in fallbacks",
    )
    gemini_base_url: str = Field(
        default=DEFAULT_GEMINI_BASE_URL,
        description="Gemini REST API base URL",
    )
    gemini_timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        ge=1,
        validation_alias=AliasChoices("FIGURINE_GEMINI_TIMEOUT_MS", "GEMINI_TIMEOUT_MS"),
        description="Deadline for a single model attempt in milliseconds",
    )

    # =========================================================================
    # HTTP Surface
    # =========================================================================
    rate_limit_max: int = Field(
        default=DEFAULT_RATE_LIMIT_MAX,
        ge=1,
        validation_alias=AliasChoices("FIGURINE_RATE_LIMIT_MAX", "RATE_LIMIT_MAX"),
        description="Generate requests allowed per client per window",
    )
    rate_limit_window_seconds: int = Field(
        default=DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        ge=1,
        description="Rate limit window length in seconds",
    )
    allowed_origins: str = Field(
        default="",
        validation_alias=AliasChoices("FIGURINE_ALLOWED_ORIGINS", "ALLOWED_ORIGINS"),
        description="Comma-separated CORS origins; empty allows any origin",
    )
    max_upload_bytes: int = Field(
        default=MAX_UPLOAD_BYTES,
        ge=1,
        description="Maximum accepted upload size in bytes",
    )
    static_dir: str = Field(
        default=DEFAULT_STATIC_DIR,
        description="Directory served at / for the browser form",
    )

    # =========================================================================
    # Observability
    # =========================================================================
    tracing_enabled: bool = Field(
        default=False,
        description="Configure OpenTelemetry tracing at startup",
    )
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC exporter endpoint (console exporter if unset)",
    )

    model_config = SettingsConfigDict(
        env_prefix="FIGURINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Raises:
            ValueError: If log level is not valid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            msg = f"log_level must be one of {valid_levels}, got '{v}'"
            raise ValueError(msg)
        return normalized

    @field_validator("gemini_model")
    @classmethod
    def blank_model_is_unset(cls, v: str | None) -> str | None:
        """Treat an empty override as no override."""
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    # =========================================================================
    # Derived Values
    # =========================================================================
    @property
    def origins(self) -> list[str]:
        """Parsed CORS allow-list."""
        return [item.strip() for item in self.allowed_origins.split(",") if item.strip()]

    @property
    def model_candidates(self) -> list[str]:
        """Model fallback order before de-duplication.

        The configured override (or the default) comes first, followed by
        the two fixed fallbacks.
        """
        return [self.gemini_model or DEFAULT_MODEL, DEFAULT_MODEL, FALLBACK_IMAGE_MODEL]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get singleton Settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()
