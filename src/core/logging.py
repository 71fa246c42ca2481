"""Structured logging module for figurine-service.

structlog is configured ONCE at startup. Development gets a readable
key/value console renderer; staging and production emit one JSON object
per line. Every event carries the request_id of the HTTP request that
produced it, tracked through a contextvar so concurrent requests never mix.
"""

import contextvars
import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict


# =============================================================================
# Singleton Configuration State
# =============================================================================
_configured: bool = False


# =============================================================================
# Request ID Context
# =============================================================================
_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None) -> contextvars.Token[str | None]:
    """Bind a request ID to the current async context.

    Returns:
        Token that restores the previous value via reset_request_id().
    """
    return _request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token[str | None]) -> None:
    _request_id_var.reset(token)


def get_request_id() -> str | None:
    return _request_id_var.get()


# =============================================================================
# Custom Processors
# =============================================================================
def add_request_id(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the current request ID, if any, to the event."""
    request_id = get_request_id()
    if request_id is not None:
        event_dict.setdefault("request_id", request_id)
    return event_dict


# =============================================================================
# Singleton Configuration
# =============================================================================
def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Configure structlog at application startup.

    Subsequent calls are no-ops unless force=True (for testing).

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Render JSON lines instead of console key/values.
        stream: Output stream. Defaults to sys.stdout.
        force: Force reconfiguration.
    """
    global _configured

    if _configured and not force:
        return

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        add_request_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """Reset configuration state so tests can reconfigure."""
    global _configured
    _configured = False


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to ``name``.

    Auto-configures with defaults if configure_logging() has not run yet.
    The returned logger keeps the configuration active when it was created.

    Args:
        name: Logger name (typically __name__ of the module).
    """
    configure_logging()
    return structlog.get_logger().bind(logger=name)
