"""Image model provider adapters for figurine-service.

Providers:
- base: ImageModelClient ABC
- gemini: GeminiClient (Gemini generateContent over httpx)
"""

from src.providers.base import ImageModelClient
from src.providers.gemini import GeminiClient


__all__: list[str] = [
    "GeminiClient",
    "ImageModelClient",
]
