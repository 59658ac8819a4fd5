"""Exponential backoff wrapper for deletion tasks."""

from __future__ import annotations
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from .errors import RetryTimeoutError, TeardownAborted
from .logging_config import get_logger

logger = get_logger()


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings for one task.

    At most ``steps`` invocations; the delay starts at ``initial_delay`` seconds
    and is multiplied by ``factor`` after every sleep. A factor of 1 or less keeps
    the delay constant.
    """

    initial_delay: float = 15.0
    factor: float = 1.3
    steps: int = 25

    def delays(self):
        """Yield the sleep before each retry (``steps - 1`` values)."""
        delay = self.initial_delay
        for _ in range(self.steps - 1):
            yield delay
            if self.factor > 1:
                delay *= self.factor


# Resources left behind by the attempt running on the current thread
_attempt = threading.local()


def report_stuck(kind: str, resource_ids: Iterable[str]) -> None:
    """Record resources the current task attempt failed to delete.

    Must be called from the thread running the task, not from its worker
    pools. Outside of ``run_with_backoff`` this does nothing.
    """
    stuck = getattr(_attempt, "stuck", None)
    if stuck is not None:
        stuck.extend(f"{kind} {resource_id}" for resource_id in resource_ids)


def _run_attempt(condition: Callable[[], bool]) -> tuple[bool, list[str]]:
    _attempt.stuck = []
    try:
        return condition(), _attempt.stuck
    finally:
        _attempt.stuck = None


def run_with_backoff(
    name: str,
    condition: Callable[[], bool],
    policy: RetryPolicy,
    abort: threading.Event | None = None,
    sleep: Callable[[float], object] | None = None,
) -> None:
    """Invoke ``condition`` until it returns True.

    Exceptions raised by ``condition`` propagate immediately. Raises
    RetryTimeoutError, carrying the resources the last attempt reported as
    stuck, when every step returned False, and TeardownAborted when ``abort``
    is set while waiting between attempts.
    """
    if policy.steps < 1:
        raise ValueError("retry policy needs at least one step")

    delays = policy.delays()
    attempt = 0
    while True:
        attempt += 1
        done, stuck = _run_attempt(condition)
        if done:
            logger.debug(
                "Task complete", extra={"task": name, "attempts": attempt}
            )
            return
        if attempt >= policy.steps:
            break

        delay = next(delays)
        logger.debug(
            "Task incomplete, backing off",
            extra={
                "task": name,
                "attempt": attempt,
                "delay_seconds": delay,
                "stuck_resources": stuck,
            },
        )
        if abort is not None:
            # Event.wait returns True as soon as the event is set
            if abort.wait(delay):
                raise TeardownAborted(f"{name} stopped after {attempt} attempts")
        elif sleep is not None:
            sleep(delay)
        else:
            time.sleep(delay)

    raise RetryTimeoutError(name, attempt, stuck)
