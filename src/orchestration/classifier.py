"""Failure classification for model attempts.

Decides what the fallback loop does after a model call raises:

    TIMEOUT   the deadline race lost; surface a timeout immediately
    CONTINUE  transient failure of this model instance; try the next one
    ABORT     request-level failure (auth, quota, validation); stop

Only the InternalErrorClassifier rules know about status codes and message
text. The orchestrator depends on the FailureClassifier protocol, so the
substring rule can be swapped for structured provider codes without
touching the fallback loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from src.core.exceptions import (
    FigurineServiceError,
    GenerationTimeoutError,
    ModelTerminalError,
    ModelTransientError,
)


class FailureAction(str, Enum):
    CONTINUE = "continue"
    ABORT = "abort"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Classification:
    """Decision for one failed attempt.

    Attributes:
        action: What the fallback loop should do next.
        error: The failure re-expressed in the service's exception hierarchy.
    """

    action: FailureAction
    error: FigurineServiceError


class FailureClassifier(Protocol):
    def classify(
        self, error: Exception, model_id: str | None = None
    ) -> Classification:
        """Classify an exception raised by a model attempt."""
        ...


def _status_of(error: Exception) -> int | None:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def _message_of(error: Exception) -> str:
    message = getattr(error, "message", None)
    return message if isinstance(message, str) and message else str(error)


class InternalErrorClassifier:
    """Treat provider "internal error" failures as transient.

    Rules, in order:
    1. GenerationTimeoutError -> TIMEOUT
    2. ModelTransientError, a transient status code (500), or a message
       containing a transient marker ("Internal error") -> CONTINUE
    3. anything else -> ABORT

    Message matching is a plain substring test and can misfire on terminal
    errors that happen to quote the marker.
    """

    def __init__(
        self,
        transient_status_codes: frozenset[int] = frozenset({500}),
        transient_markers: tuple[str, ...] = ("Internal error",),
    ) -> None:
        self._transient_status_codes = transient_status_codes
        self._transient_markers = transient_markers

    def classify(
        self, error: Exception, model_id: str | None = None
    ) -> Classification:
        if isinstance(error, GenerationTimeoutError):
            if error.model_id is None:
                error.model_id = model_id
            return Classification(FailureAction.TIMEOUT, error)

        status = _status_of(error)
        message = _message_of(error)

        if self._is_transient(error, status, message):
            transient = ModelTransientError(message, model_id=model_id, status_code=status)
            transient.__cause__ = error
            return Classification(FailureAction.CONTINUE, transient)

        terminal = ModelTerminalError(message, model_id=model_id, status_code=status)
        terminal.__cause__ = error
        return Classification(FailureAction.ABORT, terminal)

    def _is_transient(self, error: Exception, status: int | None, message: str) -> bool:
        if isinstance(error, ModelTransientError):
            return True
        if status is not None and status in self._transient_status_codes:
            return True
        return any(marker in message for marker in self._transient_markers)
