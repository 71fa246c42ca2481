"""Figurine generation route.

POST /api/generate accepts a multipart form with ``name`` and ``image``,
validates the upload, and returns the generated figurine as base64.

Status codes:
    200  {mimeType, imageBase64}
    400  invalid name, missing image, disallowed MIME type, malformed form
    413  image larger than the upload ceiling
    429  rate limit exceeded
    501  demo mode: {error, mock: true, mimeType, imageBase64} echoing the upload
    502  no model returned an image
    503  generation service not initialized
    504  a model attempt timed out
    500  anything else
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse

from src.core.constants import MAX_UPLOAD_BYTES
from src.core.exceptions import RateLimitExceededError
from src.core.logging import get_logger
from src.models.requests import GenerationRequest
from src.models.responses import (
    DemoResult,
    GenerateResponse,
    GenerationFailure,
    MockGenerateResponse,
)
from src.services.generation_service import FigurineGenerationService
from src.services.rate_limiter import FixedWindowRateLimiter


router = APIRouter(prefix="/api", tags=["generate"])
logger = get_logger(__name__)


# =============================================================================
# Dependencies
# =============================================================================


def get_generation_service(request: Request) -> FigurineGenerationService:
    """Get the generation service from app state or raise 503."""
    service: FigurineGenerationService | None = getattr(
        request.app.state, "generation_service", None
    )
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Generation service not initialized",
        )
    return service


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter | None:
    return getattr(request.app.state, "rate_limiter", None)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(
    request: Request,
    limiter: FixedWindowRateLimiter | None = Depends(get_rate_limiter),
) -> None:
    """Count this request against the client's window; 429 when exhausted."""
    if limiter is None:
        return

    decision = limiter.check(client_key(request))
    request.state.rate_limit_headers = decision.headers()
    if not decision.allowed:
        logger.warning("rate_limited", client=client_key(request), limit=decision.limit)
        raise RateLimitExceededError(
            limit=decision.limit,
            retry_after_ms=decision.reset_seconds * 1000,
            headers=decision.headers(),
        )


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/generate",
    response_model=GenerateResponse,
    summary="Generate a collectible figurine image",
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"description": "Invalid name or image"},
        413: {"description": "Image too large"},
        429: {"description": "Too many requests"},
        501: {"description": "Demo mode, original image returned", "model": MockGenerateResponse},
        502: {"description": "Model did not return an image"},
        504: {"description": "Generation timed out"},
    },
)
async def generate_figurine(
    request: Request,
    response: Response,
    name: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    service: FigurineGenerationService = Depends(get_generation_service),
) -> Any:
    """Turn the uploaded photo into a boxed figurine bearing ``name``."""
    rate_limit_headers: dict[str, str] = getattr(request.state, "rate_limit_headers", {})
    max_bytes: int = getattr(request.app.state, "max_upload_bytes", MAX_UPLOAD_BYTES)

    image_bytes = b""
    mime_type = None
    if image is not None:
        # The multipart body is already spooled by the form parser; reading one
        # byte past the ceiling is enough to tell an oversize upload apart.
        image_bytes = await image.read(max_bytes + 1)
        mime_type = image.content_type

    generation_request = GenerationRequest.from_upload(
        name=name,
        image_bytes=image_bytes,
        mime_type=mime_type,
        max_bytes=max_bytes,
    )
    logger.info(
        "generation_requested",
        mime_type=generation_request.mime_type,
        image_bytes=len(generation_request.image_bytes),
    )

    result = await service.generate(generation_request)

    if isinstance(result, DemoResult):
        mock = MockGenerateResponse(
            error=result.message,
            mime_type=result.mime_type,
            image_base64=result.image_base64,
        )
        return JSONResponse(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            content=mock.model_dump(by_alias=True),
            headers=rate_limit_headers,
        )

    if isinstance(result, GenerationFailure):
        logger.warning(
            "generation_failed",
            kind=result.kind.value,
            attempts=len(result.attempts),
        )
        raise result.error

    logger.info(
        "generation_completed",
        model=result.model,
        mime_type=result.mime_type,
        attempts=len(result.attempts),
    )
    response.headers.update(rate_limit_headers)
    return GenerateResponse(mime_type=result.mime_type, image_base64=result.image_base64)
