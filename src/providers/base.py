"""Base class for image model clients.

ImageModelClient is the port the orchestrator calls for every attempt.
Adapters translate it to a concrete provider API and raise
ModelProviderError for any failure.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class ImageModelClient(ABC):
    """Abstract client for an external generative-image model provider.

    Example:
        class MyClient(ImageModelClient):
            async def generate_content(self, model, payload):
                return {"candidates": [...]}
    """

    @abstractmethod
    async def generate_content(
        self, model: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Send one generation request to ``model``.

        Args:
            model: Provider model identifier.
            payload: Provider request body (prompt and inline image).

        Returns:
            Decoded provider response body.

        Raises:
            ModelProviderError: Transport, HTTP or decoding failure.
        """
        ...

    async def aclose(self) -> None:  # noqa: B027
        """Release network resources. Default implementation does nothing."""
