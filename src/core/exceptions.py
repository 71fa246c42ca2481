"""Custom exceptions for figurine-service.

Exception Hierarchy:
    FigurineServiceError (base)
    ├── ModelProviderError (raw provider failure, not yet classified)
    ├── RetriableError (transient errors)
    │   ├── ModelTransientError
    │   └── RateLimitExceededError
    └── NonRetriableError (permanent errors)
        ├── ModelTerminalError
        ├── GenerationTimeoutError
        ├── NoImageProducedError
        ├── ConfigurationError
        └── ValidationError
            └── UploadTooLargeError

Provider adapters raise ModelProviderError. The failure classifier turns it
into ModelTransientError (try the next model) or ModelTerminalError (stop).
"""

from __future__ import annotations

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """Machine-readable error codes used in API responses and logs."""

    # Base error
    SERVICE_ERROR = "SERVICE_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"

    # Framework-level HTTP errors (routing, unavailable dependencies)
    HTTP_ERROR = "HTTP_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Retriable errors
    MODEL_TRANSIENT = "MODEL_TRANSIENT"
    RATE_LIMITED = "RATE_LIMITED"

    # Non-retriable errors
    MODEL_TERMINAL = "MODEL_TERMINAL"
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"
    NO_IMAGE_PRODUCED = "NO_IMAGE_PRODUCED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UPLOAD_TOO_LARGE = "UPLOAD_TOO_LARGE"


# =============================================================================
# Base Exception
# =============================================================================


class FigurineServiceError(Exception):
    """Base exception for all figurine-service errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.SERVICE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )

        for key, value in kwargs.items():
            setattr(self, key, value)


class ModelProviderError(FigurineServiceError):
    """A model call failed at the provider boundary.

    Attributes:
        model_id: Model the call was addressed to.
        status_code: HTTP status returned by the provider, if any.
    """

    def __init__(
        self,
        message: str,
        model_id: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.PROVIDER_ERROR, **kwargs)
        self.model_id = model_id
        self.status_code = status_code


# =============================================================================
# Retriable Errors
# =============================================================================


class RetriableError(FigurineServiceError):
    """Base class for transient errors that may succeed on retry.

    Attributes:
        retry_after_ms: Suggested retry delay in milliseconds.
    """

    def __init__(
        self,
        message: str,
        retry_after_ms: int = 1000,
        error_code: str | ErrorCode = ErrorCode.SERVICE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.retry_after_ms = retry_after_ms


class ModelTransientError(RetriableError):
    """One model instance was temporarily unavailable; a sibling may work."""

    def __init__(
        self,
        message: str,
        model_id: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.MODEL_TRANSIENT, **kwargs)
        self.model_id = model_id
        self.status_code = status_code


class RateLimitExceededError(RetriableError):
    """Client exhausted its request allowance for the current window.

    Attributes:
        limit: Requests allowed per window.
        remaining: Requests left in the window (always 0 here).
    """

    def __init__(
        self,
        message: str = "Too many requests, please try again later.",
        limit: int | None = None,
        retry_after_ms: int = 1000,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            retry_after_ms=retry_after_ms,
            error_code=ErrorCode.RATE_LIMITED,
            **kwargs,
        )
        self.limit = limit
        self.remaining = 0


# =============================================================================
# Non-Retriable Errors
# =============================================================================


class NonRetriableError(FigurineServiceError):
    """Base class for permanent errors that should not be retried."""

    pass


class ModelTerminalError(NonRetriableError):
    """Request-level provider failure (auth, quota, malformed request).

    Every candidate would fail the same way, so the fallback chain stops.
    """

    def __init__(
        self,
        message: str,
        model_id: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.MODEL_TERMINAL, **kwargs)
        self.model_id = model_id
        self.status_code = status_code


class GenerationTimeoutError(NonRetriableError):
    """A model attempt did not settle before its deadline.

    Attributes:
        label: Description of the operation that timed out.
        timeout_ms: Deadline that elapsed.
        model_id: Candidate being attempted, when known.
    """

    def __init__(
        self,
        label: str,
        timeout_ms: int,
        model_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"{label} timed out after {timeout_ms}ms",
            error_code=ErrorCode.GENERATION_TIMEOUT,
            **kwargs,
        )
        self.label = label
        self.timeout_ms = timeout_ms
        self.model_id = model_id


class NoImageProducedError(NonRetriableError):
    """Every candidate was tried and none returned image data.

    Attributes:
        attempted_models: Candidates attempted, in order.
    """

    def __init__(
        self,
        message: str = "Model did not return an image",
        attempted_models: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.NO_IMAGE_PRODUCED, **kwargs)
        self.attempted_models = attempted_models or []


class ConfigurationError(NonRetriableError):
    """Service configuration prevents generation.

    Attributes:
        setting: Name of the problematic setting.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.CONFIGURATION_ERROR, **kwargs)
        self.setting = setting


class ValidationError(NonRetriableError):
    """Uploaded request failed validation.

    Attributes:
        field: Name of the invalid field.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        error_code: str | ErrorCode = ErrorCode.VALIDATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=error_code, **kwargs)
        self.field = field


class UploadTooLargeError(ValidationError):
    """Uploaded image exceeds the configured size ceiling."""

    def __init__(self, size: int, limit: int, **kwargs: Any) -> None:
        super().__init__(
            f"Image must be at most {limit} bytes",
            field="image",
            error_code=ErrorCode.UPLOAD_TOO_LARGE,
            **kwargs,
        )
        self.size = size
        self.limit = limit
