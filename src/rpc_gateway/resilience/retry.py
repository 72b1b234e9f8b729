"""
Retry - Generic Retry Loop Returning an Outcome Value.

retry() never raises for operation failures; it reports what happened in
a RetryOutcome so callers decide how to surface it. The backoff strategy
is injected as a policy object.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from rpc_gateway.resilience.backoff import BackoffPolicy
from rpc_gateway.resilience.cancellation import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryOutcome(Generic[T]):
    """Result of a retry loop."""
    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0
    exhausted: bool = False
    cancelled: bool = False
    succeeded: bool = False

    @property
    def ok(self) -> bool:
        """True if an attempt succeeded."""
        return self.succeeded


def _always(error: BaseException) -> bool:
    return True


def retry(
    operation: Callable[[int], T],
    policy: BackoffPolicy,
    max_attempts: int = 3,
    *,
    is_retryable: Callable[[BaseException], bool] = _always,
    on_failure: Optional[Callable[[int, BaseException], None]] = None,
    cancel: Optional[CancellationToken] = None,
    sleep: Optional[Callable[[float], None]] = None,
    operation_name: str = "operation",
) -> RetryOutcome[T]:
    """
    Run an operation until it succeeds or the attempt budget is spent.

    Args:
        operation: Called with the 1-based attempt number
        policy: Backoff policy; delay(n) is waited after the n-th failure
        max_attempts: Total attempts allowed
        is_retryable: Errors for which this returns False end the loop
        on_failure: Called with (attempt, error) for each retryable failure,
            before the backoff wait
        cancel: Optional cancellation token checked before every attempt
        sleep: Optional sleep function (defaults to token-aware waiting)
        operation_name: Name for logging

    Returns:
        RetryOutcome describing success, the final error, or cancellation

    Raises:
        ValueError: If max_attempts is less than 1
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    attempt = 0
    last_error: Optional[BaseException] = None

    while attempt < max_attempts:
        if cancel is not None and cancel.is_cancelled:
            return RetryOutcome(error=last_error, attempts=attempt, cancelled=True)

        try:
            value = operation(attempt + 1)
        except Exception as e:
            attempt += 1
            last_error = e
            if not is_retryable(e):
                return RetryOutcome(error=e, attempts=attempt)

            if on_failure is not None:
                on_failure(attempt, e)

            if attempt < max_attempts:
                delay = policy.delay(attempt)
                logger.warning(
                    f"{operation_name} failed (attempt {attempt}/{max_attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                if _wait(delay, cancel, sleep):
                    return RetryOutcome(
                        error=last_error, attempts=attempt, cancelled=True
                    )
            continue

        if attempt > 0:
            logger.info(f"{operation_name} succeeded on attempt {attempt + 1}")
        return RetryOutcome(value=value, attempts=attempt + 1, succeeded=True)

    logger.error(f"{operation_name} failed after {attempt} attempts: {last_error}")
    return RetryOutcome(error=last_error, attempts=attempt, exhausted=True)


def _wait(
    delay: float,
    cancel: Optional[CancellationToken],
    sleep: Optional[Callable[[float], None]],
) -> bool:
    """Wait out a backoff delay. Returns True if cancelled meanwhile."""
    if sleep is not None:
        sleep(delay)
        return cancel is not None and cancel.is_cancelled
    if cancel is not None:
        return cancel.wait(delay)
    time.sleep(delay)
    return False
