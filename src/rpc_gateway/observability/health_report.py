"""
Health Report - Gateway-Level Health Summary.

Turns a registry snapshot into a pass/warn/fail report:
    - healthy_endpoints: how many endpoints are usable
    - preferred_endpoint: whether traffic runs on the top-priority node
    - probe_freshness: whether health data is recent

Design Notes:
    - Pure over the snapshot; the clock is injectable
    - Non-passing checks are sent to ObservabilityManager when given,
      otherwise logged
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from rpc_gateway.domain.entities import EndpointSnapshot

if TYPE_CHECKING:
    from rpc_gateway.observability.observability_manager import (
        ObservabilityManager,
    )

logger = logging.getLogger(__name__)


class HealthCheckResult(Enum):
    """Result of a health check."""
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class HealthCheck:
    """Individual health check result."""
    name: str
    result: HealthCheckResult
    message: str
    value: Optional[float] = None
    threshold: Optional[float] = None
    recommendation: Optional[str] = None


@dataclass
class EndpointHealth:
    """Per-endpoint line of a health report."""
    name: str
    priority: int
    is_healthy: bool
    last_checked_at: Optional[datetime] = None


@dataclass
class HealthStatus:
    """
    Gateway health at one point in time.

    state is "ok" when every check passes, "degraded" when some warn and
    "down" when any fails.
    """
    is_healthy: bool
    checks: List[HealthCheck] = field(default_factory=list)
    endpoints: List[EndpointHealth] = field(default_factory=list)
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def add_check(self, check: HealthCheck) -> None:
        self.checks.append(check)
        if check.result is HealthCheckResult.FAIL:
            self.is_healthy = False

    @property
    def state(self) -> str:
        if not self.is_healthy:
            return "down"
        if any(c.result is HealthCheckResult.WARN for c in self.checks):
            return "degraded"
        return "ok"

    @property
    def issues(self) -> List[str]:
        return [c.message for c in self.checks if c.result is not HealthCheckResult.PASS]

    @property
    def recommendations(self) -> List[str]:
        return [
            c.recommendation
            for c in self.checks
            if c.result is not HealthCheckResult.PASS and c.recommendation
        ]

    @property
    def summary(self) -> Dict[str, Any]:
        """Plain-dict form for JSON status endpoints."""
        return {
            "state": self.state,
            "is_healthy": self.is_healthy,
            "timestamp": self.timestamp,
            "issues": self.issues,
            "recommendations": self.recommendations,
            "checks": {
                c.name: {
                    "result": c.result.value,
                    "message": c.message,
                    "value": c.value,
                    "threshold": c.threshold,
                }
                for c in self.checks
            },
            "endpoints": [
                {
                    "name": e.name,
                    "priority": e.priority,
                    "healthy": e.is_healthy,
                    "last_checked_at": (
                        e.last_checked_at.isoformat() if e.last_checked_at else None
                    ),
                }
                for e in self.endpoints
            ],
        }


class HealthReporter:
    """Builds HealthStatus reports from registry snapshots."""

    def __init__(
        self,
        stale_after_seconds: float = 120.0,
        check_freshness: bool = True,
        observability: Optional["ObservabilityManager"] = None,
    ) -> None:
        """
        Initialize reporter.

        Args:
            stale_after_seconds: Health data older than this is stale
            check_freshness: Disable when no monitor is running
            observability: ObservabilityManager for logging (optional)
        """
        self.stale_after_seconds = stale_after_seconds
        self.check_freshness = check_freshness
        self.observability = observability

    def report(
        self,
        snapshot: Sequence[EndpointSnapshot],
        now: Optional[datetime] = None,
    ) -> HealthStatus:
        """
        Evaluate gateway health.

        Args:
            snapshot: Registry snapshot
            now: Reference time (default: datetime.now())

        Returns:
            HealthStatus with check results
        """
        now = now or datetime.now()
        status = HealthStatus(
            is_healthy=True,
            timestamp=now.isoformat(),
            endpoints=[
                EndpointHealth(
                    name=s.name,
                    priority=s.priority,
                    is_healthy=s.is_healthy,
                    last_checked_at=s.last_checked_at,
                )
                for s in sorted(snapshot, key=lambda s: s.sort_key)
            ],
        )

        checks = [
            self._check_healthy_endpoints(snapshot),
            self._check_preferred_endpoint(snapshot),
        ]
        if self.check_freshness:
            checks.append(self._check_freshness(snapshot, now))

        for check in checks:
            status.add_check(check)
            if check.result is not HealthCheckResult.PASS:
                self._log_anomaly(check)

        return status

    def _check_healthy_endpoints(
        self, snapshot: Sequence[EndpointSnapshot]
    ) -> HealthCheck:
        total = len(snapshot)
        healthy = sum(1 for s in snapshot if s.is_healthy)

        if healthy == 0:
            return HealthCheck(
                name="healthy_endpoints",
                result=HealthCheckResult.FAIL,
                message=f"No healthy endpoints (0/{total})",
                value=0.0,
                threshold=float(total),
                recommendation="Check RPC provider status and failover configuration",
            )
        if healthy < total:
            down = ", ".join(s.name for s in snapshot if not s.is_healthy)
            return HealthCheck(
                name="healthy_endpoints",
                result=HealthCheckResult.WARN,
                message=f"{healthy}/{total} endpoints healthy (down: {down})",
                value=float(healthy),
                threshold=float(total),
                recommendation="Investigate failing endpoints",
            )
        return HealthCheck(
            name="healthy_endpoints",
            result=HealthCheckResult.PASS,
            message=f"All {total} endpoints healthy",
            value=float(healthy),
            threshold=float(total),
        )

    def _check_preferred_endpoint(
        self, snapshot: Sequence[EndpointSnapshot]
    ) -> HealthCheck:
        preferred = min(snapshot, key=lambda s: s.sort_key, default=None)
        if preferred is None or preferred.is_healthy:
            return HealthCheck(
                name="preferred_endpoint",
                result=HealthCheckResult.PASS,
                message="Preferred endpoint in service",
            )
        return HealthCheck(
            name="preferred_endpoint",
            result=HealthCheckResult.WARN,
            message=f"Preferred endpoint {preferred.name} is down, running on fallback",
            recommendation=f"Restore {preferred.name} or adjust priorities",
        )

    def _check_freshness(
        self, snapshot: Sequence[EndpointSnapshot], now: datetime
    ) -> HealthCheck:
        stale = [
            s.name
            for s in snapshot
            if s.last_checked_at is None
            or (now - s.last_checked_at).total_seconds() > self.stale_after_seconds
        ]
        if stale:
            return HealthCheck(
                name="probe_freshness",
                result=HealthCheckResult.WARN,
                message=f"Stale health data for: {', '.join(stale)}",
                value=float(len(stale)),
                threshold=self.stale_after_seconds,
                recommendation="Ensure the health monitor is running",
            )
        return HealthCheck(
            name="probe_freshness",
            result=HealthCheckResult.PASS,
            message="Health data is fresh",
            value=0.0,
            threshold=self.stale_after_seconds,
        )

    def _log_anomaly(self, check: HealthCheck) -> None:
        level = "error" if check.result is HealthCheckResult.FAIL else "warning"
        if self.observability is None:
            getattr(logger, level)(f"Health check {check.name}: {check.message}")
            return
        self.observability.log_event(
            "health_anomaly",
            {
                "check": check.name,
                "result": check.result.value,
                "message": check.message,
                "value": check.value,
                "threshold": check.threshold,
            },
            level=level,
        )
