"""
OpenTelemetry tracing for figurine-service.

Each HTTP request gets a server span (TracingMiddleware) that continues any
incoming W3C trace context and records the request ID and remaining rate
limit from the response headers. Each model attempt in the fallback loop
runs in its own child span. Without setup_tracing() the OpenTelemetry API
hands out no-op tracers, so instrumented code runs unchanged.
"""

from typing import Any, Callable, Optional

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.propagate import extract
from opentelemetry.propagators.textmap import Getter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

# Global tracer provider reference
_tracer_provider: Optional[TracerProvider] = None


def setup_tracing(
    service_name: str = "figurine-service",
    otlp_endpoint: Optional[str] = None,
    exporter: Optional[SpanExporter] = None,
) -> TracerProvider:
    """
    Configure the global OpenTelemetry TracerProvider.

    Args:
        service_name: Name of the service for resource identification
        otlp_endpoint: OTLP gRPC endpoint (requires the ``otlp`` extra)
        exporter: Explicit exporter, mainly for tests

    Returns:
        Configured TracerProvider
    """
    global _tracer_provider

    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    if exporter is None:
        if otlp_endpoint:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )

            exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        else:
            exporter = ConsoleSpanExporter()

    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider

    return provider


def shutdown_tracing() -> None:
    """Flush and shut down the provider configured by setup_tracing()."""
    global _tracer_provider

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str = __name__) -> Tracer:
    """Get a named tracer instance."""
    return trace.get_tracer(name)


AsgiHeaders = list[tuple[bytes, bytes]]


class AsgiHeaderGetter(Getter[AsgiHeaders]):
    """Read propagation headers straight from an ASGI header list."""

    def get(self, carrier: AsgiHeaders, key: str) -> Optional[list[str]]:
        name = key.lower().encode("latin-1")
        values = [value.decode("latin-1") for k, value in carrier if k.lower() == name]
        return values or None

    def keys(self, carrier: AsgiHeaders) -> list[str]:
        return [k.decode("latin-1").lower() for k, _ in carrier]


asgi_header_getter = AsgiHeaderGetter()


def extract_trace_context(headers: AsgiHeaders) -> Context:
    """Extract W3C trace context from ASGI request headers."""
    return extract(headers, getter=asgi_header_getter)


# Response headers copied onto the server span.
_RESPONSE_ATTRIBUTES = {
    b"x-request-id": "figurine.request_id",
    b"ratelimit-remaining": "figurine.rate_limit.remaining",
}


def _record_response(span: Span, message: dict[str, Any]) -> None:
    status_code = message.get("status", 500)
    span.set_attribute("http.status_code", status_code)
    for name, value in message.get("headers", []):
        attribute = _RESPONSE_ATTRIBUTES.get(name.lower())
        if attribute is not None:
            span.set_attribute(attribute, value.decode("latin-1"))
    if status_code >= 500:
        span.set_status(Status(StatusCode.ERROR))


class TracingMiddleware:
    """ASGI middleware creating one server span per HTTP request.

    Must be the outermost middleware so the request ID added by
    RequestIdMiddleware is visible on the response.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        exclude_paths: Optional[list[str]] = None,
        tracer_name: str = "figurine_service.http",
    ) -> None:
        self.app = app
        self.exclude_paths = set(exclude_paths or [])
        self.tracer = get_tracer(tracer_name)

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http" or scope.get("path", "/") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "/")

        with self.tracer.start_as_current_span(
            f"{method} {path}",
            context=extract_trace_context(scope.get("headers", [])),
            kind=SpanKind.SERVER,
            attributes={"http.method": method, "http.target": path},
        ) as span:

            async def send_wrapper(message: dict[str, Any]) -> None:
                if message["type"] == "http.response.start":
                    _record_response(span, message)
                await send(message)

            try:
                await self.app(scope, receive, send_wrapper)
            except Exception:
                # The span context records the exception and error status.
                span.set_attribute("http.status_code", 500)
                raise
