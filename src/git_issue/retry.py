"""Retry utilities for reference compare-and-swap loops."""

import logging
from collections.abc import Callable
from typing import TypeVar

from git_issue.errors import ConflictError
from git_issue.gateway.time.abc import Time

logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(max_retries: int, backoff_seconds: float) -> list[float]:
    """Delays for max_retries retries: backoff, 2*backoff, 3*backoff, ..."""
    return [backoff_seconds * (attempt + 1) for attempt in range(max_retries)]


def with_cas_retry(
    time: Time,
    operation_name: str,
    fn: Callable[[], T],
    retry_delays: list[float],
) -> T:
    """Execute a read-modify-CAS function until it stops losing races.

    The callback must re-read whatever state it depends on each time it is
    called. Raising ConflictError signals a lost race and schedules another
    attempt; any other exception bubbles up immediately.

    Args:
        time: Time abstraction for sleep operations
        operation_name: Description for logging
        fn: Function performing one full read-modify-CAS attempt
        retry_delays: Sleep before each retry; its length is the retry count

    Returns:
        Result from the first attempt that did not conflict

    Raises:
        ConflictError: If every attempt lost its race
    """
    for attempt in range(len(retry_delays) + 1):
        try:
            result = fn()
            if attempt > 0:
                logger.debug("%s succeeded on retry %d", operation_name, attempt)
            return result
        except ConflictError as e:
            if attempt == len(retry_delays):
                msg = f"Failed to {operation_name} after {attempt + 1} attempts: {e}"
                raise ConflictError(msg) from e

            delay = retry_delays[attempt]
            logger.debug("Retry %d after %ss: %s: %s", attempt + 1, delay, operation_name, e)
            time.sleep(delay)

    msg = "Retry logic error"
    raise AssertionError(msg)
