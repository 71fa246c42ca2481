"""ASGI middleware for figurine-service.

- SecurityHeadersMiddleware: hardening headers on every HTTP response.
- RequestIdMiddleware: binds a request ID to the logging context and echoes
  it back in the X-Request-ID response header.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable

from src.core.logging import reset_request_id, set_request_id


REQUEST_ID_HEADER = "x-request-id"

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
    # Generated images may be embedded by other origins.
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


def _encode_headers(headers: dict[str, str]) -> list[tuple[bytes, bytes]]:
    return [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()]


class SecurityHeadersMiddleware:
    """Add SECURITY_HEADERS to responses that do not already set them."""

    def __init__(
        self,
        app: Callable[..., Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        self.app = app
        self.headers = _encode_headers(headers or SECURITY_HEADERS)

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                existing = {name for name, _ in message.get("headers", [])}
                extra = [(n, v) for n, v in self.headers if n not in existing]
                message["headers"] = list(message.get("headers", [])) + extra
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestIdMiddleware:
    """Propagate X-Request-ID (or a fresh uuid4 hex) through the request."""

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = None
        for name, value in scope.get("headers", []):
            if name.lower() == REQUEST_ID_HEADER.encode("latin-1"):
                request_id = value.decode("latin-1").strip()[:128] or None
                break
        request_id = request_id or uuid.uuid4().hex

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers", [])) + [
                    (REQUEST_ID_HEADER.encode("latin-1"), request_id.encode("latin-1"))
                ]
            await send(message)

        token = set_request_id(request_id)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            reset_request_id(token)
