"""
Integration Tests for Gateway.

Tests cover:
    - Wiring from a validated configuration
    - Lifecycle of the background monitor
    - Runtime reconfiguration and health reporting
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import PropertyMock

import pytest

from rpc_gateway import create_gateway, load_config
from rpc_gateway.config.models import GatewayConfig, MonitorConfig
from rpc_gateway.domain.entities import EndpointDescriptor
from rpc_gateway.domain.exceptions import ConfigurationError, ExhaustedRetries
from rpc_gateway.observability.observability_manager import ObservabilityManager
from rpc_gateway.transport.session import Web3SessionFactory
from tests.fixtures.fakes import FakeSessionFactory


class TestGatewayWiring:
    """Test gateway construction."""

    def test_builds_from_sample_config(self, sample_config_path: Path) -> None:
        """
        SCENARIO: Gateway built from the sample YAML
        EXPECTED: Registry mirrors the config, default Web3 sessions
        """
        # Arrange
        config = load_config(sample_config_path)

        # Act
        gateway = create_gateway(config)

        # Assert
        assert gateway.registry.names() == ["primary", "secondary", "public"]
        assert isinstance(gateway.session_factory, Web3SessionFactory)
        assert gateway.executor.max_attempts == 3
        assert not gateway.monitor.is_running

    def test_empty_endpoint_list_rejected(self) -> None:
        """
        SCENARIO: Config constructed without endpoints
        EXPECTED: ConfigurationError at construction
        """
        with pytest.raises(ConfigurationError):
            create_gateway(GatewayConfig())

    def test_client_reads_through_failover(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: P1 down, client asks for the latest height
        EXPECTED: Height from P2, P1 marked unhealthy
        """
        # Arrange
        type(session_factory.session("P1").eth).block_number = PropertyMock(
            side_effect=ConnectionError("down")
        )
        session_factory.session("P2").eth.block_number = 500
        gateway = create_gateway(gateway_config, session_factory=session_factory)

        # Act
        height = gateway.client.get_latest_height()

        # Assert
        assert height == 500
        assert not gateway.registry.get("P1").is_healthy

    def test_events_recorded_with_observability(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Exhausted call with an observability manager
        EXPECTED: Failure and exhaustion events recorded
        """
        observability = ObservabilityManager()
        for name in ("P1", "P2", "P3"):
            session_factory.session(name).eth.get_balance.side_effect = TimeoutError()
        gateway = create_gateway(
            gateway_config, session_factory=session_factory, observability=observability
        )

        with pytest.raises(ExhaustedRetries):
            gateway.client.get_balance("0x" + "ab" * 20)

        counts = observability.event_counts()
        assert counts["endpoint_failed"] == 3
        assert counts["retries_exhausted"] == 1


class TestGatewayLifecycle:
    """Test start/stop and reconfiguration."""

    def test_context_manager_starts_enabled_monitor(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Monitoring enabled, gateway used as a context manager
        EXPECTED: Monitor runs inside the block and stops after it
        """
        config = gateway_config.model_copy(
            update={"monitor": MonitorConfig(enabled=True, interval_seconds=0.05)}
        )

        with create_gateway(config, session_factory=session_factory) as gateway:
            assert gateway.monitor.is_running

        assert not gateway.monitor.is_running

    def test_disabled_monitor_not_started(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Monitoring disabled in config
        EXPECTED: start() leaves the monitor stopped
        """
        gateway = create_gateway(gateway_config, session_factory=session_factory)

        gateway.start()

        assert not gateway.monitor.is_running
        gateway.stop()

    def test_reconfigure_switches_endpoint_set(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Endpoint set replaced at runtime
        EXPECTED: Next call routed to the new preferred endpoint
        """
        # Arrange
        gateway = create_gateway(gateway_config, session_factory=session_factory)
        gateway.executor.execute(lambda session: None)
        session_factory.session("N1").eth.gas_price = 7

        # Act
        gateway.reconfigure([
            EndpointDescriptor(name="N1", address="https://n1", priority=0),
        ])

        # Assert
        assert gateway.client.get_gas_price() == 7
        assert gateway.registry.generation == 1

    def test_invalid_reconfigure_keeps_previous_set(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: Reconfigure with duplicate names
        EXPECTED: ConfigurationError, previous endpoints kept
        """
        gateway = create_gateway(gateway_config, session_factory=session_factory)

        with pytest.raises(ConfigurationError):
            gateway.reconfigure([
                EndpointDescriptor(name="X", address="https://x1"),
                EndpointDescriptor(name="X", address="https://x2"),
            ])

        assert gateway.registry.names() == ["P1", "P2", "P3"]

    def test_health_report_reflects_registry(
        self,
        gateway_config: GatewayConfig,
        session_factory: FakeSessionFactory,
    ) -> None:
        """
        SCENARIO: One endpoint marked down
        EXPECTED: Report healthy with a warning for the down endpoint
        """
        gateway = create_gateway(gateway_config, session_factory=session_factory)
        gateway.registry.mark_unhealthy("P2")

        status = gateway.health_report()

        assert status.is_healthy
        assert any("P2" in issue for issue in status.issues)
