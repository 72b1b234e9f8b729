"""
Observability Manager - Gateway Events and Metrics.

Failover decisions (selection changes, endpoint failures, exhausted
retries, failed probes) are emitted as structlog events and kept in a
bounded in-memory buffer. Numeric samples (attempts per call, probe
latency) are kept per metric name and can be summarized.

Correlation IDs live in a ContextVar so every event logged while serving
one caller request carries the same ID, across threads that copy context.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter, deque
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Iterator, List, Optional

import structlog

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    """Correlation ID of the current context, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set (or clear, with None) the correlation ID of the current context."""
    _correlation_id.set(correlation_id)
    structlog.contextvars.unbind_contextvars("correlation_id")
    if correlation_id is not None:
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Run a block under a correlation ID, restoring the previous one after.

    Example:
        >>> with correlation_scope() as cid:
        ...     gateway.client.get_latest_height()
    """
    cid = correlation_id or str(uuid.uuid4())
    previous = _correlation_id.get()
    set_correlation_id(cid)
    try:
        yield cid
    finally:
        set_correlation_id(previous)


def configure_structlog(use_json: bool = True, log_level: int = logging.INFO) -> None:
    """
    Route structlog through stdlib logging.

    Events end up in the same handlers as the module loggers, so one
    configure_logging() call controls where everything goes.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


@dataclass(frozen=True)
class MetricSample:
    """One recorded metric value."""
    value: float
    kind: str
    tags: Dict[str, str] = field(default_factory=dict)
    recorded_at: datetime = field(default_factory=datetime.now)
    correlation_id: Optional[str] = None


class ObservabilityManager:
    """
    Structured gateway events plus in-memory metrics.

    Thread-safe: the executor and the monitor's probe threads record
    concurrently.
    """

    def __init__(
        self,
        service_name: str = "rpc_gateway",
        use_json: bool = True,
        log_level: int = logging.INFO,
        max_events: int = 10_000,
    ) -> None:
        """
        Initialize observability manager.

        Args:
            service_name: Logger name and "service" field of every event
            use_json: JSON renderer (console renderer otherwise)
            log_level: Minimum level for emitted events
            max_events: Events kept in memory; oldest dropped first
        """
        self.service_name = service_name
        self.max_events = max_events
        self._events: Deque[Dict[str, Any]] = deque(maxlen=max_events)
        self._metrics: Dict[str, List[MetricSample]] = {}
        self._lock = threading.Lock()

        configure_structlog(use_json=use_json, log_level=log_level)
        self._logger = structlog.get_logger(service_name)

    # =========================================================================
    # Correlation
    # =========================================================================

    def set_correlation_id(self, correlation_id: str) -> None:
        set_correlation_id(correlation_id)

    def generate_correlation_id(self) -> str:
        """Start a new correlation ID for the current context."""
        correlation_id = str(uuid.uuid4())
        set_correlation_id(correlation_id)
        return correlation_id

    # =========================================================================
    # Events
    # =========================================================================

    def log_event(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "info",
    ) -> None:
        """
        Emit and store a gateway event.

        Args:
            event_type: e.g. "endpoint_selected", "endpoint_failed"
            data: Event fields
            level: debug, info, warning, error or critical
        """
        fields = {
            "service": self.service_name,
            "correlation_id": get_correlation_id(),
            "timestamp": datetime.now().isoformat(),
            **(data or {}),
        }
        with self._lock:
            self._events.append({"event_type": event_type, **fields})

        emit = getattr(self._logger, level.lower(), self._logger.info)
        emit(event_type, **fields)

    def get_events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Stored events, oldest first, optionally of one type."""
        with self._lock:
            events = list(self._events)
        if event_type is None:
            return events
        return [e for e in events if e["event_type"] == event_type]

    def event_counts(self) -> Dict[str, int]:
        """Number of stored events per type."""
        with self._lock:
            return dict(Counter(e["event_type"] for e in self._events))

    def failures_by_endpoint(self) -> Dict[str, int]:
        """Failed attempts and failed probes per endpoint."""
        with self._lock:
            return dict(Counter(
                e.get("endpoint")
                for e in self._events
                if e["event_type"] in ("endpoint_failed", "probe_failed")
            ))

    # =========================================================================
    # Metrics
    # =========================================================================

    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        kind: str = "gauge",
    ) -> None:
        """Store one sample under a metric name."""
        sample = MetricSample(
            value=float(value),
            kind=kind,
            tags=dict(tags or {}),
            correlation_id=get_correlation_id(),
        )
        with self._lock:
            self._metrics.setdefault(name, []).append(sample)

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self.record_metric(name, duration_seconds, tags, kind="histogram")

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self.record_metric(name, value, tags, kind="counter")

    def get_metrics(self) -> Dict[str, List[MetricSample]]:
        """All samples per metric name."""
        with self._lock:
            return {name: list(samples) for name, samples in self._metrics.items()}

    def summarize(self, name: str, **tags: str) -> Dict[str, float]:
        """
        Count, min, max and mean of a metric's samples.

        Args:
            name: Metric name
            **tags: Only samples whose tags include these values

        Returns:
            Summary dict; count is 0 and no other keys when nothing matched
        """
        with self._lock:
            values = [
                s.value
                for s in self._metrics.get(name, [])
                if all(s.tags.get(k) == v for k, v in tags.items())
            ]
        if not values:
            return {"count": 0}
        return {
            "count": len(values),
            "min": min(values),
            "max": max(values),
            "mean": sum(values) / len(values),
        }

    def clear(self) -> None:
        """Drop all stored events and samples."""
        with self._lock:
            self._metrics.clear()
            self._events.clear()
