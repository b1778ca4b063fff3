"""
NewsGuard - Async Utilities
===========================

Fallback wrappers for awaitables on the moderation hot path.

A stalled classifier or an unexpected bug must never reach the caller of
evaluate(); these helpers turn both into a fallback value and a log line.

Usage:
    verdict = await with_timeout(
        safe_async_operation("Evaluate", fuser.evaluate(title, summary, source)),
        timeout=config.item_timeout,
        name="Evaluate",
    )
    return verdict or ModerationVerdict.assumed_safe()
"""

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

from newsguard.core.logger import logger


T = TypeVar("T")


# =============================================================================
# Deadlines
# =============================================================================

async def with_timeout(
    coro: Coroutine[Any, Any, T],
    timeout: float = 10.0,
    default: Optional[T] = None,
    name: str = "Operation",
) -> Optional[T]:
    """
    Await coro for at most timeout seconds.

    The coroutine is cancelled when the deadline passes.

    Returns:
        Its result, or default after a logged warning.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{name} Timed Out", [("Deadline", f"{timeout}s")])
        return default


# =============================================================================
# Error Containment
# =============================================================================

async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, T],
    default: Any = None,
    log_level: str = "warning",
) -> Any:
    """
    Await coro, converting any Exception into default.

    Cancellation is not an Exception and still propagates, so an outer
    with_timeout keeps working.

    Args:
        name: Label for the log entry.
        coro: Work to run.
        default: Returned when coro raises.
        log_level: "debug", "warning" or "error".
    """
    try:
        return await coro
    except Exception as e:
        report = {"debug": logger.debug, "error": logger.error}.get(log_level, logger.warning)
        report(f"{name} Failed", [
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ])
        return default


# =============================================================================
# Background Tasks
# =============================================================================

def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Schedule coro so that a crash is logged rather than lost.

    Cancelling the task ends it quietly.
    """
    async def guarded() -> None:
        try:
            await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Crashed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])

    return asyncio.create_task(guarded(), name=name)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "with_timeout",
    "safe_async_operation",
    "create_safe_task",
]
