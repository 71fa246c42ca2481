"""
Observability package for figurine-service: OpenTelemetry tracing.
"""

from src.observability.tracing import (
    setup_tracing,
    shutdown_tracing,
    TracingMiddleware,
    get_tracer,
    extract_trace_context,
)

__all__ = [
    "setup_tracing",
    "shutdown_tracing",
    "TracingMiddleware",
    "get_tracer",
    "extract_trace_context",
]
