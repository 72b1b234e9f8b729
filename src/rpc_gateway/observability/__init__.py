"""
Observability Package - Structured Logging, Metrics, Health Reports.

This package provides:
    - ObservabilityManager: structlog events with correlation IDs, metrics
    - HealthReporter: gateway health summary from a registry snapshot

Design Principles:
    - All components accept observability as an optional dependency
    - Structured JSON logging via structlog
    - Correlation ID propagation for end-to-end tracing
"""

from rpc_gateway.observability.health_report import (
    EndpointHealth,
    HealthCheck,
    HealthCheckResult,
    HealthReporter,
    HealthStatus,
)
from rpc_gateway.observability.observability_manager import (
    MetricSample,
    ObservabilityManager,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "EndpointHealth",
    "HealthCheck",
    "HealthCheckResult",
    "HealthReporter",
    "HealthStatus",
    "MetricSample",
    "ObservabilityManager",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
]
