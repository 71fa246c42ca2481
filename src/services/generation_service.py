"""Figurine generation service.

Bridges process configuration and the fallback orchestrator. Settings are
read once at startup and frozen into a GenerationConfig; the service then
runs each request either in demo mode (no credential: echo the upload) or
through ModelFallbackOrchestrator.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Union

from src.core.config import Settings
from src.core.logging import get_logger
from src.models.requests import GenerationRequest
from src.models.responses import DemoResult, GenerationResult
from src.orchestration.orchestrator import ModelFallbackOrchestrator, dedupe_candidates


logger = get_logger(__name__)

ServiceResult = Union[GenerationResult, DemoResult]


@dataclass(frozen=True)
class GenerationConfig:
    """Plain values the generation core needs, captured once at startup.

    Attributes:
        api_key: Provider credential. Empty means demo mode.
        candidates: Model names in priority order, de-duplicated.
        timeout_ms: Deadline for each model attempt.
    """

    api_key: str
    candidates: tuple[str, ...]
    timeout_ms: int

    @classmethod
    def from_settings(cls, settings: Settings) -> GenerationConfig:
        return cls(
            api_key=settings.google_api_key.strip(),
            candidates=tuple(dedupe_candidates(settings.model_candidates)),
            timeout_ms=settings.gemini_timeout_ms,
        )

    @property
    def demo_mode(self) -> bool:
        return not self.api_key


class FigurineGenerationService:
    """Entry point used by the HTTP layer for one generation request.

    Example:
        service = FigurineGenerationService(config, orchestrator)
        result = await service.generate(request)
    """

    def __init__(
        self,
        config: GenerationConfig,
        orchestrator: ModelFallbackOrchestrator | None,
    ) -> None:
        self._config = config
        self._orchestrator = orchestrator

    @property
    def config(self) -> GenerationConfig:
        return self._config

    async def generate(self, request: GenerationRequest) -> ServiceResult:
        """Run one generation.

        Returns:
            DemoResult when no credential is configured (no model is called),
            otherwise the orchestrator's GenerationResult.

        Raises:
            ConfigurationError: No model candidates configured.
        """
        if self._config.demo_mode or self._orchestrator is None:
            logger.info("demo_mode_generation", mime_type=request.mime_type)
            return DemoResult(
                image_base64=base64.b64encode(request.image_bytes).decode("ascii"),
                mime_type=request.mime_type,
            )

        return await self._orchestrator.generate(
            request,
            self._config.candidates,
            self._config.timeout_ms,
        )
