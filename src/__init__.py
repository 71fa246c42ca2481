"""figurine-service: turn an uploaded photo into a boxed collectible figurine.

The generation core tries external image models in fallback order; the
FastAPI app in src.main wraps it with upload validation, rate limiting and
error mapping.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
