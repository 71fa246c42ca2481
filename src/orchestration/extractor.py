"""Image extraction from generateContent responses.

Model responses nest image data as ``candidates[].content.parts[]``. Each
part is decoded into exactly one variant of a small tagged union:

    InlineDataPart  {"inlineData": {"data", "mimeType"?}}   (checked first)
    MediaPart       {"media": {"mimeType", "data"}}
    TextPart        {"text": ...}

Parts matching none of these are skipped. The first image part, scanning
candidates and then parts in order, wins. Text parts never match; their
first 100 characters are kept for diagnostics.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from src.core.constants import DEFAULT_RESPONSE_MIME_TYPE
from src.models.responses import ExtractedImage, ExtractionResult, NoImageFound


TEXT_SNIPPET_LENGTH = 100


# =============================================================================
# Part Variants
# =============================================================================


@dataclass(frozen=True)
class InlineDataPart:
    data: str = field(repr=False)
    mime_type: str = DEFAULT_RESPONSE_MIME_TYPE


@dataclass(frozen=True)
class MediaPart:
    data: str = field(repr=False)
    mime_type: str


@dataclass(frozen=True)
class TextPart:
    text: str


ResponsePart = Union[InlineDataPart, MediaPart, TextPart]


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def decode_part(part: Any) -> ResponsePart | None:
    """Decode one raw response part.

    The inline-data shape takes precedence over the media shape when a part
    somehow carries both.

    Returns:
        The matching variant, or None for unrecognised parts.
    """
    raw = _as_mapping(part)
    if raw is None:
        return None

    inline = _as_mapping(raw.get("inlineData") or raw.get("inline_data"))
    if inline is not None and inline.get("data"):
        mime_type = inline.get("mimeType") or inline.get("mime_type")
        return InlineDataPart(
            data=str(inline["data"]),
            mime_type=str(mime_type or DEFAULT_RESPONSE_MIME_TYPE),
        )

    media = _as_mapping(raw.get("media"))
    if media is not None and media.get("mimeType") and media.get("data"):
        return MediaPart(data=str(media["data"]), mime_type=str(media["mimeType"]))

    text = raw.get("text")
    if isinstance(text, str) and text:
        return TextPart(text=text)

    return None


def iter_parts(response: Any) -> Iterator[Any]:
    """Yield raw parts in candidate order, then part order."""
    body = _as_mapping(response) or {}
    for raw_candidate in _as_list(body.get("candidates")):
        candidate = _as_mapping(raw_candidate)
        if candidate is None:
            continue
        content = _as_mapping(candidate.get("content"))
        if content is None:
            continue
        yield from _as_list(content.get("parts"))


def extract_image(response: Any) -> ExtractionResult:
    """Return the first image in ``response`` or NoImageFound.

    Args:
        response: Decoded JSON body of a generateContent call.

    Returns:
        ExtractedImage for the first inline-data or media part, otherwise
        NoImageFound with text snippets seen along the way.
    """
    snippets: list[str] = []
    for raw_part in iter_parts(response):
        part = decode_part(raw_part)
        if isinstance(part, (InlineDataPart, MediaPart)):
            return ExtractedImage(image_base64=part.data, mime_type=part.mime_type)
        if isinstance(part, TextPart):
            snippets.append(part.text[:TEXT_SNIPPET_LENGTH])
    return NoImageFound(text_snippets=tuple(snippets))
