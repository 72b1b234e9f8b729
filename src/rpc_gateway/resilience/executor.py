"""
Resilient Executor - Retry with Endpoint Failover.

Runs a unit of work against the preferred endpoint. On a transient
failure the endpoint is marked unhealthy, the cached selection is dropped,
the executor backs off, and the next attempt re-runs selection so a
different endpoint is likely chosen.

Design Notes:
    - Permanent errors propagate immediately, without touching health
    - Exactly one health mutation per failed attempt
    - Side-effecting work passes retry_safe=False and gets one attempt
    - Successful calls with no failures never reselect
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    AbstractSet,
    Any,
    Callable,
    List,
    Optional,
    TypeVar,
)

from rpc_gateway.domain.entities import ActiveSelection
from rpc_gateway.domain.exceptions import (
    ExhaustedRetries,
    GatewayError,
    OperationCancelled,
    TransientEndpointError,
)
from rpc_gateway.registry.endpoint_registry import EndpointRegistry
from rpc_gateway.resilience.backoff import BackoffPolicy, LinearBackoff
from rpc_gateway.resilience.cancellation import CancellationToken
from rpc_gateway.resilience.retry import retry
from rpc_gateway.selection.selector import EndpointSelector, Selection
from rpc_gateway.transport.errors import classify_error
from rpc_gateway.transport.session import SessionFactoryProtocol

if TYPE_CHECKING:
    from rpc_gateway.observability.observability_manager import (
        ObservabilityManager,
    )

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResilientExecutor:
    """
    Retry/failover engine over an EndpointRegistry.

    Features:
        - Cached active selection, invalidated on failure or by the monitor
        - Injectable backoff policy (linear by default)
        - Caller cancellation via CancellationToken
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        session_factory: SessionFactoryProtocol,
        backoff: Optional[BackoffPolicy] = None,
        max_attempts: int = 3,
        selector: Optional[EndpointSelector] = None,
        observability: Optional["ObservabilityManager"] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """
        Initialize executor.

        Args:
            registry: Endpoint registry shared with the health monitor
            session_factory: Binds a session to an endpoint
            backoff: Backoff policy (default: linear, 1s base)
            max_attempts: Default attempt budget per execute()
            selector: Endpoint selector (default: EndpointSelector())
            observability: ObservabilityManager for events (optional)
            sleep: Replacement for the backoff wait (testing)
        """
        self.registry = registry
        self.session_factory = session_factory
        self.backoff = backoff or LinearBackoff()
        self.max_attempts = max_attempts
        self.selector = selector or EndpointSelector()
        self.observability = observability
        self._sleep = sleep
        self._active: Optional[ActiveSelection] = None
        self._lock = threading.Lock()
        self._failure_listeners: List[Callable[[str], None]] = []

    @property
    def active_selection(self) -> Optional[ActiveSelection]:
        """The cached preferred endpoint, if any."""
        with self._lock:
            return self._active

    def add_failure_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked with the endpoint name on failure."""
        self._failure_listeners.append(listener)

    def invalidate_selection(self, endpoint: Optional[str] = None) -> bool:
        """
        Drop the cached selection.

        Args:
            endpoint: Only invalidate if this endpoint is the active one

        Returns:
            True if a cached selection was dropped
        """
        with self._lock:
            if self._active is None:
                return False
            if endpoint is not None and self._active.endpoint != endpoint:
                return False
            logger.debug(f"Invalidated active selection {self._active.endpoint}")
            self._active = None
            return True

    def resolve(self, avoid: AbstractSet[str] = frozenset()) -> Selection:
        """
        Resolve the endpoint for the next attempt.

        Reuses the cached selection while it is valid; otherwise runs the
        selector over a fresh registry snapshot.

        Args:
            avoid: Endpoints already tried in the current execute() call
        """
        generation = self.registry.generation
        with self._lock:
            cached = self._active
            if (
                cached is not None
                and not cached.degraded
                and cached.generation == generation
                and cached.endpoint not in avoid
            ):
                snapshot = self.registry.find(cached.endpoint)
                if snapshot is not None and snapshot.is_healthy:
                    return Selection(endpoint=snapshot)

            selection = self.selector.select(self.registry.list(), avoid)
            previous = cached.endpoint if cached is not None else None
            self._active = ActiveSelection(
                endpoint=selection.name,
                generation=generation,
                selected_at=datetime.now(),
                degraded=selection.degraded,
            )

        if selection.name != previous:
            logger.info(f"Selected endpoint {selection.name}")
            self._log_event(
                "endpoint_selected",
                {
                    "endpoint": selection.name,
                    "previous": previous,
                    "degraded": selection.degraded,
                },
            )
        return selection

    def execute(
        self,
        operation: Callable[[Any], T],
        max_attempts: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
        retry_safe: bool = True,
        operation_name: str = "operation",
    ) -> T:
        """
        Run an operation with failover.

        Args:
            operation: Callable taking a session bound to one endpoint
            max_attempts: Attempt budget (default: executor's max_attempts)
            cancel: Optional caller cancellation token
            retry_safe: False for side-effecting work (single attempt)
            operation_name: Name for logging

        Returns:
            The operation's result

        Raises:
            PermanentOperationError: Not retried, raised on first occurrence
            ExhaustedRetries: When all attempts failed transiently
            OperationCancelled: When the caller cancelled between attempts
            ValueError: If max_attempts is less than 1
        """
        budget = max_attempts if max_attempts is not None else self.max_attempts
        if budget < 1:
            raise ValueError(f"max_attempts must be at least 1, got {budget}")
        if not retry_safe:
            budget = 1
        tried: List[str] = []

        def attempt(number: int) -> T:
            selection = self.resolve(avoid=frozenset(tried))
            tried.append(selection.name)
            try:
                session = self.session_factory.session_for(selection.endpoint)
                return operation(session)
            except Exception as e:
                classified = classify_error(e, endpoint=selection.name)
                if classified is e:
                    if classified.endpoint is None:
                        classified.endpoint = selection.name
                    raise
                raise classified from e

        outcome = retry(
            attempt,
            self.backoff,
            budget,
            is_retryable=lambda e: isinstance(e, TransientEndpointError),
            on_failure=self._handle_failure,
            cancel=cancel,
            sleep=self._sleep,
            operation_name=operation_name,
        )
        self._record_count("gateway_attempts", outcome.attempts, operation_name)

        if outcome.ok:
            return outcome.value  # type: ignore[return-value]

        if outcome.cancelled:
            reason = cancel.reason if cancel is not None else "cancelled"
            raise OperationCancelled(outcome.attempts, reason) from outcome.error

        if outcome.error is None:
            raise GatewayError(
                f"{operation_name} ended after {outcome.attempts} attempts without a result"
            )
        if not outcome.exhausted:
            raise outcome.error

        exhausted = ExhaustedRetries(
            last_error=outcome.error,
            attempts=outcome.attempts,
            endpoints_tried=tried,
            operation_name=operation_name,
        )
        logger.error(exhausted.describe())
        self._log_event(
            "retries_exhausted",
            {
                "operation": operation_name,
                "attempts": outcome.attempts,
                "endpoints_tried": list(tried),
            },
            level="error",
        )
        raise exhausted from outcome.error

    def _handle_failure(self, attempt: int, error: BaseException) -> None:
        """Mark the failing endpoint unhealthy and drop it as selection."""
        endpoint = getattr(error, "endpoint", None)
        if endpoint is None or self.registry.find(endpoint) is None:
            return

        self.registry.mark_unhealthy(endpoint)
        self.invalidate_selection(endpoint)
        self._log_event(
            "endpoint_failed",
            {"endpoint": endpoint, "attempt": attempt, "error": str(error)},
            level="warning",
        )

        for listener in self._failure_listeners:
            try:
                listener(endpoint)
            except Exception as e:
                logger.warning(f"Failure listener raised for {endpoint}: {e}")

    def _log_event(
        self, event_type: str, data: dict, level: str = "info"
    ) -> None:
        if self.observability is not None:
            self.observability.log_event(event_type, data, level=level)

    def _record_count(self, name: str, value: int, operation_name: str) -> None:
        if self.observability is not None:
            self.observability.record_count(
                name, value, tags={"operation": operation_name}
            )
