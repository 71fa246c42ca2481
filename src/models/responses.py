"""Result types for the generation pipeline and the HTTP API.

Pipeline results are frozen dataclasses forming small tagged unions:

    ExtractionResult  = ExtractedImage | NoImageFound
    AttemptOutcome    = AttemptSuccess | AttemptNoImage | AttemptFailure
    GenerationResult  = GenerationSuccess | GenerationFailure

API payloads are pydantic models serialized with camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.exceptions import FigurineServiceError


# =============================================================================
# Extraction
# =============================================================================


@dataclass(frozen=True)
class ExtractedImage:
    """Image payload pulled out of a model response."""

    image_base64: str = field(repr=False)
    mime_type: str


@dataclass(frozen=True)
class NoImageFound:
    """No part of the response carried image data.

    Attributes:
        text_snippets: First ~100 characters of each text part seen, for logs.
    """

    text_snippets: tuple[str, ...] = ()


ExtractionResult = Union[ExtractedImage, NoImageFound]


# =============================================================================
# Attempts
# =============================================================================


class FailureKind(str, Enum):
    """Why an attempt or a whole generation failed."""

    TRANSIENT = "transient"
    TERMINAL = "terminal"
    TIMEOUT = "timeout"
    NO_IMAGE = "no_image"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class AttemptSuccess:
    model: str
    image: ExtractedImage


@dataclass(frozen=True)
class AttemptNoImage:
    model: str
    text_snippets: tuple[str, ...] = ()


@dataclass(frozen=True)
class AttemptFailure:
    model: str
    kind: FailureKind
    message: str


AttemptOutcome = Union[AttemptSuccess, AttemptNoImage, AttemptFailure]


# =============================================================================
# Generation
# =============================================================================


@dataclass(frozen=True)
class GenerationSuccess:
    """Final successful result of one orchestration run."""

    image_base64: str = field(repr=False)
    mime_type: str
    model: str
    attempts: tuple[AttemptOutcome, ...] = ()


@dataclass(frozen=True)
class GenerationFailure:
    """Final failed result of one orchestration run.

    Attributes:
        kind: Failure classification used to pick the HTTP status.
        message: Detailed failure message.
        error: Exception carrying the classification, raised by the HTTP layer.
        attempts: Every attempt made, in order.
    """

    kind: FailureKind
    message: str
    error: FigurineServiceError
    attempts: tuple[AttemptOutcome, ...] = ()


GenerationResult = Union[GenerationSuccess, GenerationFailure]


@dataclass(frozen=True)
class DemoResult:
    """Returned instead of calling any model when no credential is configured."""

    image_base64: str = field(repr=False)
    mime_type: str
    message: str = "GOOGLE_API_KEY not set. Returning original image as mock."


# =============================================================================
# API Models
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateResponse(_CamelModel):
    """Successful POST /api/generate payload."""

    mime_type: str = Field(description="MIME type of the generated image")
    image_base64: str = Field(description="Base64-encoded generated image")


class MockGenerateResponse(_CamelModel):
    """Demo-mode payload echoing the uploaded image."""

    error: str
    mock: bool = True
    mime_type: str
    image_base64: str
