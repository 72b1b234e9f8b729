"""
Pytest Configuration and Shared Fixtures.

This module contains fixtures available to all tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from rpc_gateway.config.models import GatewayConfig, MonitorConfig, RetryConfig
from rpc_gateway.domain.entities import EndpointDescriptor
from rpc_gateway.registry.endpoint_registry import EndpointRegistry
from rpc_gateway.resilience.backoff import LinearBackoff
from rpc_gateway.resilience.executor import ResilientExecutor
from tests.fixtures.fakes import FakeSessionFactory, RecordingSleep


@pytest.fixture
def sample_config_path() -> Path:
    """Path to sample configuration file."""
    return Path(__file__).parent / "fixtures" / "sample_config.yaml"


@pytest.fixture
def descriptors() -> List[EndpointDescriptor]:
    """Three endpoints with distinct priorities, P1 most preferred."""
    return [
        EndpointDescriptor(name="P1", address="https://p1.example", priority=1, timeout_seconds=1.0),
        EndpointDescriptor(name="P2", address="https://p2.example", priority=2, timeout_seconds=1.0),
        EndpointDescriptor(name="P3", address="https://p3.example", priority=3, timeout_seconds=1.0),
    ]


@pytest.fixture
def registry(descriptors: List[EndpointDescriptor]) -> EndpointRegistry:
    """Registry over the three sample endpoints, all healthy."""
    return EndpointRegistry(descriptors)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    """Fake session factory handing out Mock sessions."""
    return FakeSessionFactory()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep replacement that records backoff delays."""
    return RecordingSleep()


@pytest.fixture
def executor(
    registry: EndpointRegistry,
    session_factory: FakeSessionFactory,
    recording_sleep: RecordingSleep,
) -> ResilientExecutor:
    """Executor with linear backoff (base 1s) and recorded sleeps."""
    return ResilientExecutor(
        registry=registry,
        session_factory=session_factory,
        backoff=LinearBackoff(base_delay_seconds=1.0),
        max_attempts=3,
        sleep=recording_sleep,
    )


@pytest.fixture
def gateway_config(descriptors: List[EndpointDescriptor]) -> GatewayConfig:
    """Gateway configuration with fast retries and monitoring disabled."""
    return GatewayConfig(
        endpoints=descriptors,
        retry=RetryConfig(max_attempts=3, base_delay_seconds=0.0),
        monitor=MonitorConfig(enabled=False, interval_seconds=0.05),
    )
