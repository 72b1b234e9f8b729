"""
Backoff Policies - Delay Between Retry Attempts.

Each policy maps the number of failed attempts so far (1-based) to a
delay in seconds, capped at max_delay_seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from rpc_gateway.config.models import RetryConfig


class BackoffPolicy(Protocol):
    """Protocol for backoff strategies."""

    def delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        ...


@dataclass(frozen=True)
class ConstantBackoff:
    """Same delay after every attempt."""
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0

    def delay(self, attempt: int) -> float:
        return min(self.base_delay_seconds, self.max_delay_seconds)


@dataclass(frozen=True)
class LinearBackoff:
    """Delay grows as attempt * base_delay."""
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0

    def delay(self, attempt: int) -> float:
        return min(attempt * self.base_delay_seconds, self.max_delay_seconds)


@dataclass(frozen=True)
class ExponentialBackoff:
    """Delay grows as base_delay * exponential_base ** (attempt - 1)."""
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    exponential_base: float = 2.0

    def delay(self, attempt: int) -> float:
        delay = self.base_delay_seconds * (
            self.exponential_base ** (attempt - 1)
        )
        return min(delay, self.max_delay_seconds)


def backoff_from_config(config: RetryConfig) -> BackoffPolicy:
    """Build the backoff policy named by a RetryConfig."""
    if config.strategy == "constant":
        return ConstantBackoff(config.base_delay_seconds, config.max_delay_seconds)
    if config.strategy == "exponential":
        return ExponentialBackoff(
            config.base_delay_seconds,
            config.max_delay_seconds,
            config.exponential_base,
        )
    return LinearBackoff(config.base_delay_seconds, config.max_delay_seconds)
