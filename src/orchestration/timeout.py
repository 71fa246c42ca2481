"""Deadline race for a single model attempt.

race() waits for an awaitable for at most ``timeout_ms``. When the deadline
wins, the awaitable is NOT cancelled: the outbound HTTP call keeps running
in the background and its eventual result is discarded. Only the waiting is
abandoned. Abandoned tasks are held in a module-level set until they finish
so they are not garbage collected mid-flight and so their exceptions are
retrieved instead of being reported as "never retrieved".

The deadline timer belongs to asyncio.wait(), which cancels it on every
exit path (result, exception, timeout, or cancellation of the caller).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from src.core.exceptions import GenerationTimeoutError
from src.core.logging import get_logger


T = TypeVar("T")

logger = get_logger(__name__)

_abandoned: set[asyncio.Future] = set()


def _on_abandoned_done(task: asyncio.Future) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("abandoned_attempt_failed", error=str(error))
    else:
        logger.debug("abandoned_attempt_completed")


def abandoned_count() -> int:
    """Number of timed-out operations still running in the background."""
    return len(_abandoned)


async def race(
    operation: Awaitable[T],
    timeout_ms: int,
    label: str,
    model_id: str | None = None,
) -> T:
    """Await ``operation`` unless ``timeout_ms`` elapses first.

    Args:
        operation: Coroutine or future to wait for.
        timeout_ms: Deadline in milliseconds.
        label: Human-readable operation name used in the timeout message.
        model_id: Candidate being attempted, carried on the timeout error.

    Returns:
        The operation's result, unchanged.

    Raises:
        GenerationTimeoutError: The deadline elapsed first.
        Exception: Whatever the operation raised, unchanged.
    """
    task = asyncio.ensure_future(operation)
    try:
        done, _pending = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    _abandoned.add(task)
    task.add_done_callback(_on_abandoned_done)
    raise GenerationTimeoutError(label, timeout_ms, model_id=model_id)
