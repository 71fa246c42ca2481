"""Services for figurine-service.

Modules:
- generation_service: GenerationConfig + FigurineGenerationService
- rate_limiter: FixedWindowRateLimiter for the generate endpoint
"""

__all__: list[str] = []
