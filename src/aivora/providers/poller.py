"""Provider-agnostic polling loop for asynchronous provider tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .providers_base import PollStatus, TaskState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Completed:
    artifact_url: str


@dataclass(frozen=True, slots=True)
class Failed:
    reason: str


@dataclass(frozen=True, slots=True)
class TimedOut:
    attempts: int


PollOutcome = Completed | Failed | TimedOut

StatusCheck = Callable[[str], Awaitable[PollStatus]]


async def await_completion(
    task_handle: str,
    status_check: StatusCheck,
    *,
    interval_ms: int,
    max_attempts: int,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollOutcome:
    """Sleep, check, repeat until the task is terminal or the budget runs out.

    Checks are strictly sequential. Errors raised by ``status_check``
    propagate to the caller.
    """
    interval_seconds = max(interval_ms, 0) / 1000.0
    for attempt in range(1, max_attempts + 1):
        await sleep(interval_seconds)
        status = await status_check(task_handle)
        logger.debug(
            "poller.attempt",
            extra={
                "task_handle": task_handle,
                "attempt": attempt,
                "max_attempts": max_attempts,
                "state": status.state.value,
            },
        )
        if status.state is TaskState.DONE and status.artifact_url:
            return Completed(artifact_url=status.artifact_url)
        if status.state is TaskState.FAILED:
            return Failed(reason=status.reason or "Provider task failed")
    logger.warning(
        "poller.timed_out",
        extra={"task_handle": task_handle, "attempts": max_attempts},
    )
    return TimedOut(attempts=max_attempts)
