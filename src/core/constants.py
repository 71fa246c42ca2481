"""Service constants for figurine-service.

Centralizes defaults shared by configuration, request validation and the
generation pipeline so that routes, settings and tests agree on them.

Usage:
    from src.core.constants import ALLOWED_IMAGE_MIME_TYPES, DEFAULT_MODEL
"""

# =============================================================================
# Service Defaults
# =============================================================================

DEFAULT_SERVICE_NAME = "figurine-service"
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_STATIC_DIR = "public"


# =============================================================================
# Model Defaults
# =============================================================================

# Quota-preferred model is tried first; the image-preview model is the last resort.
DEFAULT_MODEL = "gemini-2.5-pro-preview-03-25"
FALLBACK_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT_MS = 90_000
DEFAULT_RESPONSE_MIME_TYPE = "image/png"


# =============================================================================
# Upload Validation
# =============================================================================

ALLOWED_IMAGE_MIME_TYPES: frozenset[str] = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}
)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
NAME_MAX_LENGTH = 40
NAME_PUNCTUATION = " .,'-"


# =============================================================================
# Rate Limiting
# =============================================================================

DEFAULT_RATE_LIMIT_MAX = 20
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 15 * 60
