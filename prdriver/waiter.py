"""Poll the agent status until the conversation stops running."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .log import get_logger
from .status import ExecutionStatus, StatusSource

logger = get_logger(__name__)


class CompletionTimeoutError(TimeoutError):
    """The conversation was still running when the wait budget ran out."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timeout: conversation did not complete within {timeout:g}s")


class ErrorBudgetExceededError(RuntimeError):
    """Too many status checks failed in a row."""

    def __init__(self, max_consecutive_errors: int):
        self.max_consecutive_errors = max_consecutive_errors
        super().__init__(f"Aborting: {max_consecutive_errors} consecutive status check failures")


@dataclass
class WaitOptions:
    timeout: float = 10 * 60
    max_consecutive_errors: int = 5
    poll_interval: float = 2.0
    on_status_change: Optional[Callable[[str], None]] = None


async def wait_for_completion(source: StatusSource, options: WaitOptions | None = None) -> str:
    """Block until ``source`` reports a status other than ``running``.

    Returns the first non-running status. Raises ``CompletionTimeoutError``
    once ``options.timeout`` seconds have passed, or
    ``ErrorBudgetExceededError`` after ``options.max_consecutive_errors``
    failed status checks in a row. A single failure is only logged; the next
    poll is the retry.
    """
    options = options or WaitOptions()
    start = time.monotonic()
    consecutive_errors = 0
    last_status = ""

    while True:
        if time.monotonic() - start > options.timeout:
            raise CompletionTimeoutError(options.timeout)

        await asyncio.sleep(options.poll_interval)

        try:
            status = await source.get_agent_status()
        except Exception as exc:
            consecutive_errors += 1
            logger.warning(
                "Status check failed (%d/%d): %s",
                consecutive_errors,
                options.max_consecutive_errors,
                exc,
            )
            if consecutive_errors >= options.max_consecutive_errors:
                raise ErrorBudgetExceededError(options.max_consecutive_errors) from exc
            continue

        consecutive_errors = 0
        if status != last_status:
            logger.debug("Agent status changed: %r -> %r", last_status, status)
            if options.on_status_change is not None:
                options.on_status_change(status)
            last_status = status

        if status != ExecutionStatus.RUNNING:
            return status
