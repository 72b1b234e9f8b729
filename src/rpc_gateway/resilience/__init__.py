"""
Resilience Package - Retry, Backoff and Failover.

This package provides the resilience patterns the gateway is built on:
    - Backoff policies: constant, linear, exponential
    - retry(): generic retry loop returning a RetryOutcome
    - ResilientExecutor: retry with endpoint failover
    - CancellationToken: caller-side abort of a retry loop

Design Principles:
    - Fail fast for permanent errors
    - Retry with backoff for transient errors
    - Never blindly retry side-effecting work
"""

from rpc_gateway.resilience.backoff import (
    BackoffPolicy,
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    backoff_from_config,
)
from rpc_gateway.resilience.cancellation import CancellationToken
from rpc_gateway.resilience.executor import ResilientExecutor
from rpc_gateway.resilience.retry import RetryOutcome, retry

__all__ = [
    "BackoffPolicy",
    "CancellationToken",
    "ConstantBackoff",
    "ExponentialBackoff",
    "LinearBackoff",
    "ResilientExecutor",
    "RetryOutcome",
    "backoff_from_config",
    "retry",
]
