"""Retry a whole logical operation after a lost race or a store failure."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from storeops.domain.exceptions import RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_conflict(
    operation: Callable[[], T],
    attempts: int = 3,
    backoff: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation``; re-run it from scratch on a retryable error.

    The operation must re-read its state on every call (a handler opening
    a fresh unit of work does).  Validation errors are raised immediately;
    the last retryable error is raised once ``attempts`` are used up.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(attempts):
        try:
            return operation()
        except RetryableError as exc:
            if attempt == attempts - 1:
                raise
            wait = backoff * (2 ** attempt)
            logger.warning(
                "%s. Retry in %.2fs (%d/%d)", exc, wait, attempt + 1, attempts,
            )
            sleep(wait)
    raise AssertionError("unreachable")
