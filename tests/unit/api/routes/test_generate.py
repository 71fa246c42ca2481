"""Unit tests for POST /api/generate.

Tests for:
- Upload validation (name, MIME type, size)
- Success, fallback and failure status codes
- Demo mode mock response
- Rate limiting headers and 429
"""

from __future__ import annotations

import base64
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.core.exceptions import ModelProviderError
from src.main import create_app
from tests.conftest import MODEL_A, PNG_BYTES
from tests.fakes import FakeModelClient, Hang, image_response, text_response


GENERATE_ENDPOINT = "/api/generate"


def _post(
    client: TestClient,
    name: str | None = "Ava",
    image: bytes | None = PNG_BYTES,
    content_type: str = "image/png",
):  # type: ignore[no-untyped-def]
    data = {"name": name} if name is not None else {}
    files = {"image": ("photo.png", image, content_type)} if image is not None else None
    return client.post(GENERATE_ENDPOINT, data=data, files=files)


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    def test_missing_image(self, client: TestClient, fake_client: FakeModelClient) -> None:
        response = _post(client, image=None)

        assert response.status_code == 400
        assert response.json() == {"error": "Image file is required", "code": "VALIDATION_ERROR"}
        assert fake_client.calls == []

    @pytest.mark.parametrize("name", ["", "   ", "A" * 41, "<script>", "Ava!"])
    def test_invalid_name(
        self, client: TestClient, fake_client: FakeModelClient, name: str
    ) -> None:
        response = _post(client, name=name)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert fake_client.calls == []

    def test_missing_name(self, client: TestClient) -> None:
        assert _post(client, name=None).status_code == 400

    def test_disallowed_mime_type(self, client: TestClient) -> None:
        response = _post(client, content_type="image/gif")

        assert response.status_code == 400
        assert response.json()["error"] == "Only JPEG, PNG, WEBP, HEIC/HEIF images are allowed"

    def test_image_sent_as_text_field(
        self, client: TestClient, fake_client: FakeModelClient
    ) -> None:
        response = client.post(GENERATE_ENDPOINT, data={"name": "Ava", "image": "not-a-file"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid image field", "code": "VALIDATION_ERROR"}
        assert fake_client.calls == []

    def test_service_not_initialized(self, app: FastAPI, client: TestClient) -> None:
        app.state.generation_service = None

        response = _post(client)

        assert response.status_code == 503
        assert response.json() == {
            "error": "Generation service not initialized",
            "code": "SERVICE_UNAVAILABLE",
        }

    def test_image_too_large(self, tmp_path: Path, fake_client: FakeModelClient) -> None:
        settings = Settings(
            google_api_key="k",
            gemini_model=MODEL_A,
            max_upload_bytes=16,
            static_dir=str(tmp_path / "none"),
        )
        with TestClient(create_app(settings, model_client=fake_client)) as client:
            response = _post(client, image=b"x" * 17)

        assert response.status_code == 413
        assert response.json()["code"] == "UPLOAD_TOO_LARGE"
        assert fake_client.calls == []


# =============================================================================
# Generation
# =============================================================================


class TestGeneration:
    def test_success(self, client: TestClient, fake_client: FakeModelClient) -> None:
        fake_client.script(MODEL_A, image_response("ZmlndXJpbmU=", "image/png"))

        response = _post(client, name="Mary-Jane O'Neil")

        assert response.status_code == 200
        assert response.json() == {"mimeType": "image/png", "imageBase64": "ZmlndXJpbmU="}
        assert response.headers["RateLimit-Limit"] == "100"
        assert response.headers["RateLimit-Remaining"] == "99"
        assert fake_client.calls[0] == MODEL_A
        prompt = fake_client.payloads[0]["contents"][0]["parts"][0]["text"]
        assert '"Mary-Jane O\'Neil"' in prompt

    def test_fallback_after_internal_error(
        self, client: TestClient, fake_client: FakeModelClient
    ) -> None:
        fake_client.script(MODEL_A, ModelProviderError("Internal error 500", status_code=500))
        fake_client.script("gemini-2.5-pro-preview-03-25", image_response("b2s="))

        response = _post(client)

        assert response.status_code == 200
        assert response.json()["imageBase64"] == "b2s="
        assert fake_client.calls == [MODEL_A, "gemini-2.5-pro-preview-03-25"]

    def test_no_image_from_any_model(
        self, client: TestClient, fake_client: FakeModelClient
    ) -> None:
        response = _post(client)

        assert response.status_code == 502
        assert response.json() == {
            "error": "Model did not return an image",
            "code": "NO_IMAGE_PRODUCED",
        }
        assert len(fake_client.calls) == 3

    def test_terminal_error(self, client: TestClient, fake_client: FakeModelClient) -> None:
        fake_client.script(MODEL_A, ModelProviderError("API key not valid", status_code=400))

        response = _post(client)

        assert response.status_code == 500
        assert response.json() == {"error": "API key not valid", "code": "MODEL_TERMINAL"}
        assert fake_client.calls == [MODEL_A]

    def test_timeout(self, tmp_path: Path) -> None:
        hang = Hang()
        fake = FakeModelClient({MODEL_A: hang})
        settings = Settings(
            google_api_key="k",
            gemini_model=MODEL_A,
            gemini_timeout_ms=50,
            static_dir=str(tmp_path / "none"),
        )
        with TestClient(create_app(settings, model_client=fake)) as client:
            response = _post(client)

        assert response.status_code == 504
        assert response.json()["code"] == "GENERATION_TIMEOUT"
        assert MODEL_A in response.json()["error"]
        assert fake.calls == [MODEL_A]

    def test_unexpected_text_then_image(
        self, client: TestClient, fake_client: FakeModelClient
    ) -> None:
        fake_client.script(MODEL_A, text_response("Sure! Here is your figurine."))
        fake_client.script("gemini-2.5-pro-preview-03-25", image_response("eA=="))

        assert _post(client).json()["imageBase64"] == "eA=="


# =============================================================================
# Demo Mode
# =============================================================================


class TestDemoMode:
    def test_returns_mock_with_501(self, tmp_path: Path) -> None:
        settings = Settings(google_api_key="", static_dir=str(tmp_path / "none"))
        with TestClient(create_app(settings)) as client:
            response = _post(client, content_type="image/jpeg")

        assert response.status_code == 501
        body = response.json()
        assert body["mock"] is True
        assert body["mimeType"] == "image/jpeg"
        assert base64.b64decode(body["imageBase64"]) == PNG_BYTES
        assert "GOOGLE_API_KEY not set" in body["error"]
        assert "RateLimit-Limit" in response.headers

    def test_validation_still_applies(self, tmp_path: Path) -> None:
        settings = Settings(google_api_key="", static_dir=str(tmp_path / "none"))
        with TestClient(create_app(settings)) as client:
            assert _post(client, name="").status_code == 400


# =============================================================================
# Rate Limiting
# =============================================================================


class TestRateLimiting:
    def test_429_after_limit(self, tmp_path: Path) -> None:
        fake = FakeModelClient({MODEL_A: image_response()})
        settings = Settings(
            google_api_key="k",
            gemini_model=MODEL_A,
            rate_limit_max=2,
            static_dir=str(tmp_path / "none"),
        )
        with TestClient(create_app(settings, model_client=fake)) as client:
            statuses = [_post(client).status_code for _ in range(3)]
            limited = _post(client)

        assert statuses == [200, 200, 429]
        assert limited.json()["code"] == "RATE_LIMITED"
        assert limited.headers["RateLimit-Remaining"] == "0"
        assert int(limited.headers["Retry-After"]) >= 1
        assert fake.calls == [MODEL_A, MODEL_A]
