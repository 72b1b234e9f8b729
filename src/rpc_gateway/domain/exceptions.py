"""
Gateway Exceptions.

Error taxonomy surfaced to callers:
    - TransientEndpointError: network/timeout/malformed response, retried
    - PermanentOperationError: bad input or remote rejection, not retried
    - ExhaustedRetries: retry budget consumed
    - ConfigurationError: unusable endpoint configuration
    - OperationCancelled: caller cancelled or deadline passed mid-retry
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class GatewayError(Exception):
    """Base class for all gateway errors."""
    pass


class ConfigurationError(GatewayError):
    """Raised when the endpoint configuration cannot be used."""
    pass


class TransientEndpointError(GatewayError):
    """Raised when an endpoint fails in a way that warrants failover."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.cause = cause


class PermanentOperationError(GatewayError):
    """Raised for failures unrelated to endpoint health."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.cause = cause


class ExhaustedRetries(GatewayError):
    """
    Raised when every attempt of an operation failed.

    The message is deliberately generic so calling layers can show it
    as-is; details live on the attributes.
    """

    def __init__(
        self,
        last_error: Optional[BaseException],
        attempts: int,
        endpoints_tried: Sequence[str] = (),
        operation_name: str = "operation",
    ) -> None:
        super().__init__("Service temporarily unavailable")
        self.last_error = last_error
        self.attempts = attempts
        self.endpoints_tried: Tuple[str, ...] = tuple(endpoints_tried)
        self.operation_name = operation_name

    def describe(self) -> str:
        """Detailed description for logs."""
        return (
            f"{self.operation_name} failed after {self.attempts} attempts "
            f"(endpoints: {', '.join(self.endpoints_tried) or '-'}): "
            f"{self.last_error!r}"
        )


class OperationCancelled(GatewayError):
    """Raised when a caller cancels an operation between attempts."""

    def __init__(self, attempts: int, reason: str = "cancelled") -> None:
        super().__init__(f"Operation {reason} after {attempts} attempts")
        self.attempts = attempts
        self.reason = reason
