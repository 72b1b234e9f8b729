"""
Gateway - Composition Root.

Wires registry, executor, health monitor and client from one validated
GatewayConfig. Construct one Gateway per process (or per test) and pass
it, or its client, to whoever needs it.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from rpc_gateway.client.facade import GatewayClient
from rpc_gateway.config.models import GatewayConfig
from rpc_gateway.domain.entities import EndpointDescriptor
from rpc_gateway.monitoring.health_monitor import HealthMonitor
from rpc_gateway.observability.health_report import HealthReporter, HealthStatus
from rpc_gateway.observability.observability_manager import ObservabilityManager
from rpc_gateway.registry.endpoint_registry import EndpointRegistry
from rpc_gateway.resilience.backoff import BackoffPolicy, backoff_from_config
from rpc_gateway.resilience.executor import ResilientExecutor
from rpc_gateway.transport.session import (
    SessionFactoryProtocol,
    Web3SessionFactory,
)

logger = logging.getLogger(__name__)


class Gateway:
    """
    A fully wired gateway.

    Attributes:
        registry: Endpoint descriptors and health
        executor: Retry/failover engine
        monitor: Background health probes
        client: Named chain operations
    """

    def __init__(
        self,
        config: GatewayConfig,
        session_factory: Optional[SessionFactoryProtocol] = None,
        backoff: Optional[BackoffPolicy] = None,
        observability: Optional[ObservabilityManager] = None,
    ) -> None:
        """
        Initialize gateway.

        Args:
            config: Validated gateway configuration
            session_factory: Session factory (default: Web3SessionFactory)
            backoff: Backoff policy (default: built from config.retry)
            observability: ObservabilityManager (optional)

        Raises:
            ConfigurationError: If no endpoints are configured
        """
        self.config = config
        self.observability = observability
        self.session_factory = session_factory or Web3SessionFactory()
        self.registry = EndpointRegistry(config.endpoints)
        self.executor = ResilientExecutor(
            registry=self.registry,
            session_factory=self.session_factory,
            backoff=backoff or backoff_from_config(config.retry),
            max_attempts=config.retry.max_attempts,
            observability=observability,
        )
        self.monitor = HealthMonitor(
            registry=self.registry,
            session_factory=self.session_factory,
            interval_seconds=config.monitor.interval_seconds,
            max_workers=config.monitor.probe_workers,
            invalidate_selection=self.executor.invalidate_selection,
            observability=observability,
        )
        self.executor.add_failure_listener(self.monitor.trigger)
        self.reporter = HealthReporter(
            stale_after_seconds=config.monitor.stale_after_seconds,
            check_freshness=config.monitor.enabled,
            observability=observability,
        )
        self.client = GatewayClient(self.executor)

    def start(self) -> "Gateway":
        """Start background health monitoring if enabled."""
        if self.config.monitor.enabled:
            self.monitor.start()
        return self

    def stop(self) -> None:
        """Stop background health monitoring."""
        self.monitor.stop()

    def __enter__(self) -> "Gateway":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def health_report(self) -> HealthStatus:
        """Current gateway health."""
        return self.reporter.report(self.registry.list())

    def reconfigure(self, endpoints: Iterable[EndpointDescriptor]) -> None:
        """
        Replace the whole endpoint set.

        Raises:
            ConfigurationError: If the new set is empty or names repeat
        """
        self.registry.replace(endpoints)
        self.executor.invalidate_selection()
        self.monitor.trigger()


def create_gateway(
    config: GatewayConfig,
    session_factory: Optional[SessionFactoryProtocol] = None,
    observability: Optional[ObservabilityManager] = None,
) -> Gateway:
    """
    Convenience function to build a gateway.

    The gateway is not started; use it as a context manager or call
    start().
    """
    return Gateway(
        config,
        session_factory=session_factory,
        observability=observability,
    )
