"""Error handlers for FastAPI exception handling.

Error Response Schema:
{
    "error": "Human-readable message",
    "code": "ERROR_CODE"
}

Status codes follow the failure classification: validation 400, oversized
upload 413, rate limited 429, model returned no image 502, timeout 504,
everything else 500. Malformed form fields are reported as 400 and
framework HTTP errors (unknown route, service not initialized) keep their
status; both use the same body. When ``app.state.expose_error_details`` is false
(production), 5xx messages are replaced by fixed public text so provider
errors and internals never reach the client.
"""

from __future__ import annotations

import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.exceptions import (
    ErrorCode,
    FigurineServiceError,
    GenerationTimeoutError,
    NoImageProducedError,
    NonRetriableError,
    RateLimitExceededError,
    RetriableError,
    UploadTooLargeError,
    ValidationError,
)
from src.core.logging import get_logger


logger = get_logger(__name__)

PUBLIC_UNEXPECTED_MESSAGE = "Unexpected error"


# =============================================================================
# Error Response Model
# =============================================================================


class ErrorResponse(BaseModel):
    """Error payload returned for every failed request.

    Attributes:
        error: Human-readable error message.
        code: Machine-readable error code.
    """

    error: str
    code: str


# =============================================================================
# Status Code Mapping
# =============================================================================


def get_status_code_for_error(error: Exception) -> int:
    """Determine HTTP status code based on exception type."""
    if isinstance(error, UploadTooLargeError):
        return 413
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, RateLimitExceededError):
        return 429
    if isinstance(error, NoImageProducedError):
        return 502
    if isinstance(error, GenerationTimeoutError):
        return 504

    if isinstance(error, RetriableError):
        return 503
    if isinstance(error, NonRetriableError):
        return 500
    return 500


def public_message(error: Exception, status_code: int, expose_details: bool) -> str:
    """Message safe to show an external caller.

    Client errors (4xx) always keep their message. Server errors keep it only
    when details are exposed; otherwise a fixed message is used.
    """
    detailed = error.message if isinstance(error, FigurineServiceError) else str(error)
    if expose_details or status_code < 500:
        return detailed or PUBLIC_UNEXPECTED_MESSAGE
    if isinstance(error, NoImageProducedError):
        return "Model did not return an image"
    if isinstance(error, GenerationTimeoutError):
        return f"Generation timed out after {error.timeout_ms}ms"
    return PUBLIC_UNEXPECTED_MESSAGE


def _expose_details(request: Request) -> bool:
    return bool(getattr(request.app.state, "expose_error_details", False))


def build_error_response(error: Exception, expose_details: bool) -> tuple[int, ErrorResponse]:
    """Build status code and body for ``error``."""
    status_code = get_status_code_for_error(error)
    code = (
        error.error_code
        if isinstance(error, FigurineServiceError)
        else ErrorCode.SERVICE_ERROR.value
    )
    body = ErrorResponse(
        error=public_message(error, status_code, expose_details),
        code=code,
    )
    return status_code, body


# =============================================================================
# Exception Handlers
# =============================================================================


async def figurine_service_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle FigurineServiceError and its non-retriable subclasses."""
    if not isinstance(exc, FigurineServiceError):
        return await generic_error_handler(request, exc)

    status_code, body = build_error_response(exc, _expose_details(request))
    if status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            status_code=status_code,
            code=exc.error_code,
            error=exc.message,
        )

    return JSONResponse(status_code=status_code, content=body.model_dump())


async def retriable_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle RetriableError exceptions with Retry-After header."""
    if not isinstance(exc, RetriableError):
        return await generic_error_handler(request, exc)

    status_code, body = build_error_response(exc, _expose_details(request))

    retry_after_seconds = max(1, math.ceil(exc.retry_after_ms / 1000))
    headers = {"Retry-After": str(retry_after_seconds)}
    headers.update(getattr(exc, "headers", None) or {})

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(),
        headers=headers,
    )


async def request_validation_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Report malformed form fields as a 400 VALIDATION_ERROR."""
    if not isinstance(exc, RequestValidationError):
        return await generic_error_handler(request, exc)

    errors = exc.errors()
    field = None
    if errors:
        loc = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
        field = loc[-1] if loc else None
    message = f"Invalid {field} field" if field else "Invalid request"

    body = ErrorResponse(error=message, code=ErrorCode.VALIDATION_ERROR.value)
    return JSONResponse(status_code=400, content=body.model_dump())


async def http_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Keep the status of framework HTTP errors but use the ErrorResponse body."""
    if not isinstance(exc, StarletteHTTPException):
        return await generic_error_handler(request, exc)

    code = (
        ErrorCode.SERVICE_UNAVAILABLE.value
        if exc.status_code == 503
        else ErrorCode.HTTP_ERROR.value
    )
    body = ErrorResponse(error=str(exc.detail), code=code)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def generic_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions with a 500."""
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    _status_code, body = build_error_response(exc, _expose_details(request))

    return JSONResponse(status_code=500, content=body.model_dump())


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(RetriableError, retriable_error_handler)
    app.add_exception_handler(FigurineServiceError, figurine_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_error_handler)
