"""Generation request model.

A GenerationRequest is built once from a validated upload and handed to a
single orchestration run. It is frozen so nothing downstream can alter the
subject name or image bytes mid-run.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field

from src.core.constants import (
    ALLOWED_IMAGE_MIME_TYPES,
    MAX_UPLOAD_BYTES,
    NAME_MAX_LENGTH,
    NAME_PUNCTUATION,
)
from src.core.exceptions import UploadTooLargeError, ValidationError


NAME_RULE_MESSAGE = (
    f"Name must be 1-{NAME_MAX_LENGTH} characters and use letters, numbers, "
    "spaces, or . , ' -"
)
MIME_RULE_MESSAGE = "Only JPEG, PNG, WEBP, HEIC/HEIF images are allowed"


def _is_allowed_name_char(char: str) -> bool:
    # Unicode letters (L*) and numbers (N*), plus a few punctuation marks.
    return char in NAME_PUNCTUATION or unicodedata.category(char)[0] in ("L", "N")


def validate_subject_name(raw: str | None) -> str:
    """Trim and validate the name printed on the figurine box.

    Args:
        raw: Name as submitted by the client.

    Returns:
        The trimmed name.

    Raises:
        ValidationError: If the name is empty, too long, or uses other characters.
    """
    name = (raw or "").strip()
    if not 1 <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError(NAME_RULE_MESSAGE, field="name")
    if not all(_is_allowed_name_char(char) for char in name):
        raise ValidationError(NAME_RULE_MESSAGE, field="name")
    return name


def validate_mime_type(mime_type: str | None) -> str:
    """Check the upload's MIME type against the allow-list."""
    normalized = (mime_type or "").strip().lower()
    if normalized not in ALLOWED_IMAGE_MIME_TYPES:
        raise ValidationError(MIME_RULE_MESSAGE, field="image")
    return normalized


@dataclass(frozen=True)
class GenerationRequest:
    """Validated input for one figurine generation.

    Attributes:
        subject_name: Name printed on the packaging (1-40 chars).
        image_bytes: Raw uploaded photo.
        mime_type: One of ALLOWED_IMAGE_MIME_TYPES.
    """

    subject_name: str
    image_bytes: bytes = field(repr=False)
    mime_type: str

    @classmethod
    def from_upload(
        cls,
        name: str | None,
        image_bytes: bytes | None,
        mime_type: str | None,
        max_bytes: int = MAX_UPLOAD_BYTES,
    ) -> GenerationRequest:
        """Validate raw upload fields and build a request.

        Raises:
            ValidationError: Missing image, bad name or disallowed MIME type.
            UploadTooLargeError: Image larger than max_bytes.
        """
        if not image_bytes:
            raise ValidationError("Image file is required", field="image")
        checked_mime_type = validate_mime_type(mime_type)
        if len(image_bytes) > max_bytes:
            raise UploadTooLargeError(size=len(image_bytes), limit=max_bytes)
        return cls(
            subject_name=validate_subject_name(name),
            image_bytes=image_bytes,
            mime_type=checked_mime_type,
        )
