"""Unit tests for the model fallback orchestrator.

Tests for:
- Candidate de-duplication and ordering
- Short-circuit on success, fallback on no-image and transient errors
- Immediate stop on terminal errors and timeouts
- Attempt records and per-attempt spans
"""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from src.core.exceptions import (
    ConfigurationError,
    GenerationTimeoutError,
    ModelProviderError,
    ModelTerminalError,
    NoImageProducedError,
)
from src.models.requests import GenerationRequest
from src.models.responses import (
    AttemptFailure,
    AttemptNoImage,
    AttemptSuccess,
    FailureKind,
    GenerationFailure,
    GenerationSuccess,
)
from src.orchestration.classifier import Classification, FailureAction
from src.orchestration.orchestrator import ModelFallbackOrchestrator, dedupe_candidates
from src.providers.base import ImageModelClient
from tests.fakes import FakeModelClient, Hang, image_response, media_response, text_response


INTERNAL_ERROR = ModelProviderError("Internal error 500", status_code=500)
AUTH_ERROR = ModelProviderError("API key not valid", status_code=400)


# =============================================================================
# dedupe_candidates
# =============================================================================


class TestDedupeCandidates:
    def test_preserves_first_seen_order(self) -> None:
        assert dedupe_candidates(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    def test_drops_blank_entries(self) -> None:
        assert dedupe_candidates(["", "a", "  ", "a "]) == ["a"]

    def test_empty(self) -> None:
        assert dedupe_candidates([]) == []


# =============================================================================
# generate()
# =============================================================================


class TestSuccess:
    @pytest.mark.asyncio
    async def test_first_model_success_short_circuits(
        self, sample_request: GenerationRequest
    ) -> None:
        client = FakeModelClient({"a": image_response("img-a"), "b": image_response("img-b")})
        orchestrator = ModelFallbackOrchestrator(client)

        result = await orchestrator.generate(sample_request, ["a", "b"], 1000)

        assert isinstance(result, GenerationSuccess)
        assert result.image_base64 == "img-a"
        assert result.model == "a"
        assert client.calls == ["a"]

    @pytest.mark.asyncio
    async def test_media_shape_response(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": media_response("m", "image/webp")})

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a"], 1000)

        assert isinstance(result, GenerationSuccess)
        assert result.mime_type == "image/webp"

    @pytest.mark.asyncio
    async def test_each_unique_candidate_attempted_once_in_order(
        self, sample_request: GenerationRequest
    ) -> None:
        client = FakeModelClient({"c": image_response()})

        await ModelFallbackOrchestrator(client).generate(
            sample_request, ["a", "b", "a", "b", "c", "a"], 1000
        )

        assert client.calls == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_same_payload_sent_to_every_candidate(
        self, sample_request: GenerationRequest
    ) -> None:
        client = FakeModelClient({"b": image_response()})

        await ModelFallbackOrchestrator(client).generate(sample_request, ["a", "b"], 1000)

        assert client.payloads[0] == client.payloads[1]
        assert '"Ava"' in client.payloads[0]["contents"][0]["parts"][0]["text"]


class TestFallback:
    @pytest.mark.asyncio
    async def test_text_only_response_advances(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": text_response("nope"), "b": image_response("img-b")})

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a", "b"], 1000)

        assert isinstance(result, GenerationSuccess)
        assert result.image_base64 == "img-b"
        assert result.attempts[0] == AttemptNoImage(model="a", text_snippets=("nope",))

    @pytest.mark.asyncio
    async def test_internal_error_advances(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": INTERNAL_ERROR, "b": image_response("img-b")})

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a", "b"], 1000)

        assert isinstance(result, GenerationSuccess)
        assert client.calls == ["a", "b"]
        first = result.attempts[0]
        assert isinstance(first, AttemptFailure)
        assert first.kind == FailureKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_end_to_end_duplicate_candidate_with_internal_error(self) -> None:
        request = GenerationRequest(
            subject_name="Ava",
            image_bytes=b"\x89PNG\r\n\x1a\n" + b"\x00" * (2 * 1024 * 1024),
            mime_type="image/png",
        )
        client = FakeModelClient(
            {
                "modelA": ModelProviderError("Internal error 500", status_code=500),
                "modelB": image_response("b-image", "image/png"),
            }
        )

        result = await ModelFallbackOrchestrator(client).generate(
            request, ["modelA", "modelA", "modelB"], 1000
        )

        assert isinstance(result, GenerationSuccess)
        assert result.image_base64 == "b-image"
        assert client.calls.count("modelA") == 1
        assert client.calls == ["modelA", "modelB"]

    @pytest.mark.asyncio
    async def test_all_candidates_exhausted(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": text_response(), "b": INTERNAL_ERROR})

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a", "b"], 1000)

        assert isinstance(result, GenerationFailure)
        assert result.kind == FailureKind.NO_IMAGE
        assert isinstance(result.error, NoImageProducedError)
        assert result.error.attempted_models == ["a", "b"]
        assert len(result.attempts) == 2


class TestAbort:
    @pytest.mark.asyncio
    async def test_auth_error_stops_immediately(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": AUTH_ERROR, "b": image_response()})

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a", "b"], 1000)

        assert isinstance(result, GenerationFailure)
        assert result.kind == FailureKind.TERMINAL
        assert isinstance(result.error, ModelTerminalError)
        assert result.message == "API key not valid"
        assert client.calls == ["a"]

    @pytest.mark.asyncio
    async def test_abort_after_transient(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": INTERNAL_ERROR, "b": AUTH_ERROR, "c": image_response()})

        result = await ModelFallbackOrchestrator(client).generate(
            sample_request, ["a", "b", "c"], 1000
        )

        assert isinstance(result, GenerationFailure)
        assert result.kind == FailureKind.TERMINAL
        assert client.calls == ["a", "b"]


class TestTimeout:
    @pytest.mark.asyncio
    async def test_hanging_model_times_out_with_label(
        self, sample_request: GenerationRequest
    ) -> None:
        hang = Hang()
        client = FakeModelClient({"slow": hang, "b": image_response()})

        started = time.perf_counter()
        result = await ModelFallbackOrchestrator(client).generate(
            sample_request, ["slow", "b"], 50
        )
        elapsed = time.perf_counter() - started

        assert isinstance(result, GenerationFailure)
        assert result.kind == FailureKind.TIMEOUT
        assert isinstance(result.error, GenerationTimeoutError)
        assert result.error.model_id == "slow"
        assert "slow" in result.message
        assert client.calls == ["slow"]
        assert elapsed < 1.0

        hang.release()
        await asyncio.sleep(0)


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient()
        with pytest.raises(ConfigurationError):
            await ModelFallbackOrchestrator(client).generate(sample_request, [], 1000)
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_blank_candidates_raise(self, sample_request: GenerationRequest) -> None:
        with pytest.raises(ConfigurationError):
            await ModelFallbackOrchestrator(FakeModelClient()).generate(
                sample_request, ["", " "], 1000
            )


class TestCollaborators:
    @pytest.mark.asyncio
    async def test_custom_classifier_is_used(self, sample_request: GenerationRequest) -> None:
        """A classifier may turn any error into CONTINUE."""
        classifier = MagicMock()
        classifier.classify.side_effect = lambda error, model_id=None: Classification(
            FailureAction.CONTINUE, ModelTerminalError(str(error), model_id=model_id)
        )
        client = FakeModelClient({"a": AUTH_ERROR, "b": image_response()})

        result = await ModelFallbackOrchestrator(client, classifier=classifier).generate(
            sample_request, ["a", "b"], 1000
        )

        assert isinstance(result, GenerationSuccess)
        classifier.classify.assert_called_once()

    @pytest.mark.asyncio
    async def test_works_with_async_mock_client(self, sample_request: GenerationRequest) -> None:
        client = MagicMock(spec=ImageModelClient)
        client.generate_content = AsyncMock(return_value=image_response("mocked"))

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a"], 1000)

        assert isinstance(result, GenerationSuccess)
        client.generate_content.assert_awaited_once()
        assert client.generate_content.await_args.args[0] == "a"

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self) -> None:
        client = FakeModelClient({"a": INTERNAL_ERROR, "b": image_response("shared")})
        orchestrator = ModelFallbackOrchestrator(client)
        requests = [
            GenerationRequest(subject_name=f"Name {i}", image_bytes=b"x", mime_type="image/png")
            for i in range(5)
        ]

        results = await asyncio.gather(
            *(orchestrator.generate(r, ["a", "b"], 1000) for r in requests)
        )

        assert all(isinstance(r, GenerationSuccess) for r in results)
        assert all(len(r.attempts) == 2 for r in results)
        assert client.calls.count("a") == 5

    @pytest.mark.asyncio
    async def test_attempt_spans_recorded(self, sample_request: GenerationRequest) -> None:
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        tracer = provider.get_tracer("test")
        client = FakeModelClient({"a": INTERNAL_ERROR, "b": image_response()})

        await ModelFallbackOrchestrator(client, tracer=tracer).generate(
            sample_request, ["a", "b"], 1000
        )

        spans = exporter.get_finished_spans()
        assert [s.attributes["figurine.model"] for s in spans] == ["a", "b"]
        assert [s.attributes["figurine.outcome"] for s in spans] == ["transient", "success"]

    @pytest.mark.asyncio
    async def test_success_attempt_recorded(self, sample_request: GenerationRequest) -> None:
        client = FakeModelClient({"a": image_response("x")})

        result = await ModelFallbackOrchestrator(client).generate(sample_request, ["a"], 1000)

        assert isinstance(result.attempts[0], AttemptSuccess)
