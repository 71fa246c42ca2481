"""Figurine generation orchestration.

Modules:
- orchestrator: ModelFallbackOrchestrator, tries model candidates in order
- classifier: FailureClassifier protocol and the default InternalErrorClassifier
- extractor: Pulls the first image out of a generateContent response
- timeout: Deadline race around a single model call
- prompt: Figurine prompt and request payload
"""

__all__: list[str] = []
