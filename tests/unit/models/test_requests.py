"""Unit tests for GenerationRequest validation."""

import dataclasses

import pytest

from src.core.exceptions import UploadTooLargeError, ValidationError
from src.models.requests import (
    GenerationRequest,
    validate_mime_type,
    validate_subject_name,
)


PNG = b"\x89PNG\r\n\x1a\n"


class TestSubjectName:
    @pytest.mark.parametrize(
        "raw",
        ["Ava", "Jean-Luc", "O'Brien", "Dr. Who, Jr.", "Zoë", "李小龍", "R2 D2", "x" * 40],
    )
    def test_accepts_valid_names(self, raw: str) -> None:
        assert validate_subject_name(raw) == raw

    def test_trims_whitespace(self) -> None:
        assert validate_subject_name("  Ava  ") == "Ava"

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", None, "x" * 41, "Ava!", "<script>", "a_b", "name\nnewline", 'say "hi"'],
    )
    def test_rejects_invalid_names(self, raw: str | None) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_subject_name(raw)
        assert exc_info.value.field == "name"


class TestMimeType:
    @pytest.mark.parametrize(
        "mime", ["image/jpeg", "image/png", "image/webp", "image/heic", "image/heif", "IMAGE/PNG"]
    )
    def test_accepts_allow_listed(self, mime: str) -> None:
        assert validate_mime_type(mime) == mime.lower()

    @pytest.mark.parametrize("mime", ["image/gif", "application/pdf", "", None])
    def test_rejects_others(self, mime: str | None) -> None:
        with pytest.raises(ValidationError):
            validate_mime_type(mime)


class TestFromUpload:
    def test_builds_request(self) -> None:
        request = GenerationRequest.from_upload(" Ava ", PNG, "image/png")
        assert request.subject_name == "Ava"
        assert request.image_bytes == PNG
        assert request.mime_type == "image/png"

    def test_missing_image(self) -> None:
        with pytest.raises(ValidationError, match="Image file is required"):
            GenerationRequest.from_upload("Ava", b"", "image/png")

    def test_too_large(self) -> None:
        with pytest.raises(UploadTooLargeError) as exc_info:
            GenerationRequest.from_upload("Ava", b"x" * 11, "image/png", max_bytes=10)
        assert exc_info.value.size == 11
        assert exc_info.value.limit == 10

    def test_exactly_at_limit_is_accepted(self) -> None:
        request = GenerationRequest.from_upload("Ava", b"x" * 10, "image/png", max_bytes=10)
        assert len(request.image_bytes) == 10

    def test_request_is_immutable(self) -> None:
        request = GenerationRequest.from_upload("Ava", PNG, "image/png")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.subject_name = "Bob"  # type: ignore[misc]

    def test_repr_hides_image_bytes(self) -> None:
        request = GenerationRequest.from_upload("Ava", PNG, "image/png")
        assert "image_bytes" not in repr(request)
