"""
Integration Tests for Failover and Recovery.

Tests cover:
    - Failover to the next healthy endpoint mid-operation
    - Exhaustion when every endpoint fails
    - Recovery through the health monitor feeding the executor
"""

from __future__ import annotations

import time
from typing import List

import pytest

from rpc_gateway.domain.entities import EndpointDescriptor
from rpc_gateway.domain.exceptions import ExhaustedRetries
from rpc_gateway.monitoring.health_monitor import HealthMonitor
from rpc_gateway.registry.endpoint_registry import EndpointRegistry
from rpc_gateway.resilience.backoff import LinearBackoff
from rpc_gateway.resilience.executor import ResilientExecutor
from tests.fixtures.fakes import FailingOn, FakeSessionFactory, RecordingSleep


class HealthFlipCounter:
    """Counts registry health transitions by wrapping its mutators."""

    def __init__(self, registry: EndpointRegistry) -> None:
        self.flips: List[str] = []
        mark_unhealthy = registry.mark_unhealthy
        mark_healthy = registry.mark_healthy

        def unhealthy(name: str) -> bool:
            changed = mark_unhealthy(name)
            if changed:
                self.flips.append(f"{name}:down")
            return changed

        def healthy(name: str) -> bool:
            changed = mark_healthy(name)
            if changed:
                self.flips.append(f"{name}:up")
            return changed

        registry.mark_unhealthy = unhealthy
        registry.mark_healthy = healthy


class TestFailoverScenarios:
    """Failover across three prioritized endpoints."""

    def test_failover_to_second_endpoint(
        self,
        registry: EndpointRegistry,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: [P1 healthy, P2 healthy, P3 unhealthy], operation fails on P1 only
        EXPECTED: Result via P2 on attempt two, one flip, one backoff delay
        """
        # Arrange
        registry.mark_unhealthy("P3")
        counter = HealthFlipCounter(registry)
        sleep = RecordingSleep()
        executor = ResilientExecutor(
            registry, session_factory,
            backoff=LinearBackoff(base_delay_seconds=1.0),
            max_attempts=3,
            sleep=sleep,
        )
        op = FailingOn({"P1"}, result=12345)

        # Act
        result = executor.execute(op)

        # Assert
        assert result == 12345
        assert op.seen == ["P1", "P2"]
        assert counter.flips == ["P1:down"]
        assert sleep.delays == [1.0]

    def test_all_endpoints_fail(
        self,
        registry: EndpointRegistry,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Every endpoint fails on every attempt
        EXPECTED: ExhaustedRetries after the third attempt, all unhealthy,
                  linear delays between attempts
        """
        # Arrange
        sleep = RecordingSleep()
        executor = ResilientExecutor(
            registry, session_factory,
            backoff=LinearBackoff(base_delay_seconds=1.0),
            max_attempts=3,
            sleep=sleep,
        )
        op = FailingOn({"P1", "P2", "P3"})

        # Act
        with pytest.raises(ExhaustedRetries) as exc_info:
            executor.execute(op)

        # Assert
        assert exc_info.value.attempts == 3
        assert len(op.seen) == 3
        assert not any(s.is_healthy for s in registry.list())
        assert sleep.delays == [1.0, 2.0]

    def test_real_backoff_elapsed_time(
        self,
        registry: EndpointRegistry,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: All endpoints fail with a short real backoff
        EXPECTED: Elapsed time close to the sum of the delays
        """
        executor = ResilientExecutor(
            registry, session_factory,
            backoff=LinearBackoff(base_delay_seconds=0.05),
            max_attempts=3,
        )

        start = time.monotonic()
        with pytest.raises(ExhaustedRetries):
            executor.execute(FailingOn({"P1", "P2", "P3"}))
        elapsed = time.monotonic() - start

        assert 0.15 <= elapsed < 1.0


class TestRecovery:
    """Monitor and executor working together."""

    def test_recovered_endpoint_becomes_selectable(
        self,
        registry: EndpointRegistry,
        session_factory: FakeSessionFactory,
        recording_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: P1 fails during a call, later answers probes again
        EXPECTED: After one monitor cycle the executor routes to P1 again
        """
        # Arrange
        executor = ResilientExecutor(
            registry, session_factory,
            backoff=LinearBackoff(base_delay_seconds=1.0),
            sleep=recording_sleep,
        )
        monitor = HealthMonitor(
            registry, session_factory,
            invalidate_selection=executor.invalidate_selection,
        )
        executor.execute(FailingOn({"P1"}))
        assert executor.active_selection.endpoint == "P2"

        # Act
        monitor.run_cycle()
        monitor.stop()
        op = FailingOn(set())
        executor.execute(op)

        # Assert
        assert op.seen == ["P1"]
        assert registry.get("P1").is_healthy

    def test_failed_probe_moves_traffic_before_any_call_fails(
        self,
        registry: EndpointRegistry,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Monitor detects P1 down between calls
        EXPECTED: Next call goes straight to P2 with no failed attempt
        """
        executor = ResilientExecutor(registry, session_factory, sleep=RecordingSleep())
        executor.execute(lambda session: None)
        monitor = HealthMonitor(
            registry, session_factory,
            probe=FailingOn({"P1"}),
            invalidate_selection=executor.invalidate_selection,
        )

        monitor.run_cycle()
        monitor.stop()
        op = FailingOn(set())
        executor.execute(op)

        assert op.seen == ["P2"]

    def test_background_monitor_restores_endpoint(
        self, session_factory: FakeSessionFactory
    ) -> None:
        """
        SCENARIO: Running monitor with a short interval, endpoint knocked out
        EXPECTED: Endpoint healthy again within about one interval
        """
        registry = EndpointRegistry([
            EndpointDescriptor(name="A", address="https://a", priority=1, timeout_seconds=0.5),
            EndpointDescriptor(name="B", address="https://b", priority=2, timeout_seconds=0.5),
        ])
        executor = ResilientExecutor(registry, session_factory, sleep=RecordingSleep())
        monitor = HealthMonitor(
            registry, session_factory,
            interval_seconds=0.05,
            invalidate_selection=executor.invalidate_selection,
        )

        with monitor:
            executor.execute(FailingOn({"A"}))
            deadline = time.monotonic() + 1.0
            while not registry.get("A").is_healthy and time.monotonic() < deadline:
                time.sleep(0.01)

        assert registry.get("A").is_healthy
        assert executor.resolve().name == "A"
