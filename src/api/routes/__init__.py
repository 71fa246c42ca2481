"""API route handlers for figurine-service.

Routes:
- health: /api/health
- generate: /api/generate (multipart upload -> figurine image)
"""

__all__: list[str] = []
