"""pytest configuration and fixtures for figurine-service tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.core.logging import configure_logging, reset_logging
from src.models.requests import GenerationRequest
from tests.fakes import FakeModelClient


# =============================================================================
# Constants (S1192: Avoid duplicated string literals)
# =============================================================================

MODEL_A = "model-a"
MODEL_B = "model-b"
MODEL_C = "model-c"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (may require network)")
    config.addinivalue_line("markers", "slow: Slow tests")


@pytest.fixture(autouse=True)
def _quiet_logging() -> Generator[None, None, None]:
    """Route structlog output to a throwaway stream for each test."""
    import io

    reset_logging()
    configure_logging(level="DEBUG", json_output=True, stream=io.StringIO(), force=True)
    yield
    reset_logging()


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def sample_request() -> GenerationRequest:
    return GenerationRequest(subject_name="Ava", image_bytes=PNG_BYTES, mime_type="image/png")


@pytest.fixture
def fake_client() -> FakeModelClient:
    return FakeModelClient()


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with a credential, fast timeouts and no static directory."""
    return Settings(
        google_api_key="test-key",
        gemini_model=MODEL_A,
        gemini_timeout_ms=1000,
        rate_limit_max=100,
        environment="development",
        log_level="DEBUG",
        static_dir=str(tmp_path / "no-static"),
    )


@pytest.fixture
def app(test_settings: Settings, fake_client: FakeModelClient) -> FastAPI:
    from src.main import create_app

    return create_app(test_settings, model_client=fake_client)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient with lifespan started."""
    with TestClient(app) as test_client:
        yield test_client
