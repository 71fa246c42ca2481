"""Model fallback orchestrator.

Tries each model candidate in priority order until one returns an image or
a failure makes further attempts pointless:

    for model in dedupe(candidates):
        race(client.generate_content(model, payload), timeout_ms)
          ├─ image found       -> GenerationSuccess (stop)
          ├─ no image          -> next model
          └─ raised
               ├─ CONTINUE     -> next model
               ├─ ABORT        -> GenerationFailure(TERMINAL) (stop)
               └─ TIMEOUT      -> GenerationFailure(TIMEOUT) (stop)
    exhausted                  -> GenerationFailure(NO_IMAGE)

Attempts are strictly sequential. The orchestrator keeps no state between
calls, so one instance can serve concurrent requests.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from opentelemetry.trace import Tracer

from src.core.exceptions import ConfigurationError, NoImageProducedError
from src.core.logging import get_logger
from src.models.requests import GenerationRequest
from src.models.responses import (
    AttemptFailure,
    AttemptNoImage,
    AttemptOutcome,
    AttemptSuccess,
    ExtractedImage,
    FailureKind,
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
)
from src.observability.tracing import get_tracer
from src.orchestration.classifier import (
    Classification,
    FailureAction,
    FailureClassifier,
    InternalErrorClassifier,
)
from src.orchestration.extractor import extract_image
from src.orchestration.prompt import build_payload
from src.orchestration.timeout import race
from src.providers.base import ImageModelClient


logger = get_logger(__name__)

_ACTION_TO_KIND = {
    FailureAction.CONTINUE: FailureKind.TRANSIENT,
    FailureAction.ABORT: FailureKind.TERMINAL,
    FailureAction.TIMEOUT: FailureKind.TIMEOUT,
}


def dedupe_candidates(candidates: Iterable[str]) -> list[str]:
    """Drop blank and repeated model names, keeping first-seen order."""
    return list(dict.fromkeys(c.strip() for c in candidates if c and c.strip()))


def attempt_label(model: str) -> str:
    return f"Gemini generateContent with {model}"


class ModelFallbackOrchestrator:
    """Run one generation across an ordered list of model candidates.

    Attributes:
        client: Adapter used for every outbound model call.
        classifier: Decides CONTINUE / ABORT / TIMEOUT for failed attempts.

    Example:
        orchestrator = ModelFallbackOrchestrator(client=GeminiClient(api_key))
        result = await orchestrator.generate(request, ["model-a", "model-b"], 90_000)
    """

    def __init__(
        self,
        client: ImageModelClient,
        classifier: FailureClassifier | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        self._client = client
        self._classifier = classifier or InternalErrorClassifier()
        self._tracer = tracer or get_tracer(__name__)

    @property
    def client(self) -> ImageModelClient:
        return self._client

    @property
    def classifier(self) -> FailureClassifier:
        return self._classifier

    async def generate(
        self,
        request: GenerationRequest,
        candidates: Iterable[str],
        timeout_ms: int,
    ) -> GenerationResult:
        """Generate a figurine image, falling back across candidates.

        Args:
            request: Validated generation input.
            candidates: Model names in priority order; duplicates are ignored.
            timeout_ms: Deadline for each individual attempt.

        Returns:
            GenerationSuccess or GenerationFailure. Transient per-model errors
            never escape; only the final outcome is returned.

        Raises:
            ConfigurationError: No candidates after de-duplication.
        """
        models = dedupe_candidates(candidates)
        if not models:
            raise ConfigurationError("No model candidates configured", setting="gemini_model")

        # Identical for every candidate, so encode the image once.
        payload = build_payload(request)
        attempts: list[AttemptOutcome] = []

        for model in models:
            outcome, classification = await self._attempt(model, payload, timeout_ms)
            attempts.append(outcome)

            if isinstance(outcome, AttemptSuccess):
                return GenerationSuccess(
                    image_base64=outcome.image.image_base64,
                    mime_type=outcome.image.mime_type,
                    model=model,
                    attempts=tuple(attempts),
                )

            if classification is not None and classification.action != FailureAction.CONTINUE:
                return GenerationFailure(
                    kind=_ACTION_TO_KIND[classification.action],
                    message=classification.error.message,
                    error=classification.error,
                    attempts=tuple(attempts),
                )

        logger.warning("generation_exhausted", models=models)
        error = NoImageProducedError(attempted_models=models)
        return GenerationFailure(
            kind=FailureKind.NO_IMAGE,
            message=error.message,
            error=error,
            attempts=tuple(attempts),
        )

    async def _attempt(
        self,
        model: str,
        payload: dict[str, Any],
        timeout_ms: int,
    ) -> tuple[AttemptOutcome, Classification | None]:
        with self._tracer.start_as_current_span("figurine.model_attempt") as span:
            span.set_attribute("figurine.model", model)
            logger.info("model_attempt_started", model=model, timeout_ms=timeout_ms)

            try:
                response = await race(
                    self._client.generate_content(model, payload),
                    timeout_ms,
                    attempt_label(model),
                    model_id=model,
                )
            except Exception as exc:
                classification = self._classifier.classify(exc, model_id=model)
                kind = _ACTION_TO_KIND[classification.action]
                span.set_attribute("figurine.outcome", kind.value)
                logger.warning(
                    "model_attempt_failed",
                    model=model,
                    decision=classification.action.value,
                    error=classification.error.message,
                    status_code=getattr(classification.error, "status_code", None),
                )
                failure = AttemptFailure(
                    model=model, kind=kind, message=classification.error.message
                )
                return failure, classification

            extracted = extract_image(response)
            if isinstance(extracted, ExtractedImage):
                span.set_attribute("figurine.outcome", "success")
                logger.info(
                    "model_attempt_succeeded", model=model, mime_type=extracted.mime_type
                )
                return AttemptSuccess(model=model, image=extracted), None

            span.set_attribute("figurine.outcome", FailureKind.NO_IMAGE.value)
            for snippet in extracted.text_snippets:
                logger.info("model_returned_text", model=model, text=snippet)
            logger.info("model_returned_no_image", model=model)
            return AttemptNoImage(model=model, text_snippets=extracted.text_snippets), None
