"""
Health Monitor - Background Endpoint Probing.

Keeps the registry's health flags fresh without blocking callers:
    - A daemon thread runs a probe cycle every interval
    - Each cycle probes all endpoints concurrently on a thread pool
    - Success marks healthy, failure or timeout marks unhealthy
    - trigger() wakes the loop early (reactive probing after failures)

Design Notes:
    - Per-endpoint isolation: one failing probe never aborts the others
    - Probe failures are logged and recorded, never propagated
    - Flips invalidate the executor's cached selection via a callback
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from rpc_gateway.domain.entities import EndpointSnapshot
from rpc_gateway.registry.endpoint_registry import EndpointRegistry
from rpc_gateway.transport.session import SessionFactoryProtocol

if TYPE_CHECKING:
    from rpc_gateway.observability.observability_manager import (
        ObservabilityManager,
    )

logger = logging.getLogger(__name__)


def block_height_probe(session: Any) -> int:
    """Minimal side-effect-free call: current block height."""
    return session.eth.block_number


@dataclass
class ProbeResult:
    """Outcome of probing one endpoint."""
    endpoint: str
    ok: bool
    latency_ms: float
    checked_at: datetime = field(default_factory=datetime.now)
    height: Optional[int] = None
    error: Optional[str] = None


class HealthMonitor:
    """
    Periodically probes every endpoint and updates the registry.

    Lifecycle:
        monitor.start()   # background thread, first cycle immediately
        monitor.trigger() # run the next cycle now
        monitor.stop()    # signal and join
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        session_factory: SessionFactoryProtocol,
        interval_seconds: float = 30.0,
        probe: Callable[[Any], Any] = block_height_probe,
        max_workers: int = 8,
        invalidate_selection: Optional[Callable[[Optional[str]], Any]] = None,
        observability: Optional["ObservabilityManager"] = None,
    ) -> None:
        """
        Initialize health monitor.

        Args:
            registry: Registry whose health flags are maintained
            session_factory: Binds a session to an endpoint
            interval_seconds: Time between cycles
            probe: Side-effect-free call made against each session
            max_workers: Probe thread pool size
            invalidate_selection: Called with an endpoint name when it goes
                unhealthy, or None when any endpoint recovers
            observability: ObservabilityManager for events (optional)
        """
        self.registry = registry
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.probe = probe
        self.max_workers = max_workers
        self.invalidate_selection = invalidate_selection
        self.observability = observability

        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._pool: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._last_reports: Dict[str, ProbeResult] = {}
        self._cycles = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cycles(self) -> int:
        """Number of completed probe cycles."""
        with self._lock:
            return self._cycles

    def start(self) -> None:
        """Start the background thread. No-op if already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._wake_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="rpc-gateway-health-monitor", daemon=True
        )
        self._thread.start()
        logger.info(
            f"Health monitor started ({len(self.registry)} endpoints, "
            f"every {self.interval_seconds}s)"
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the background thread and release the probe pool."""
        self._stop_event.set()
        self._wake_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Health monitor thread did not stop in time")
            else:
                logger.info("Health monitor stopped")
        self._thread = None

        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=False, cancel_futures=True)

    def trigger(self, endpoint: Optional[str] = None) -> None:
        """Wake the background loop for an immediate cycle."""
        if self.is_running:
            logger.debug(f"Health check triggered (endpoint={endpoint})")
            self._wake_event.set()

    def __enter__(self) -> "HealthMonitor":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    # =========================================================================
    # Probing
    # =========================================================================

    def run_cycle(self) -> List[ProbeResult]:
        """
        Probe every endpoint once and apply the results.

        Returns:
            One ProbeResult per endpoint, most preferred first
        """
        snapshot = self.registry.list()
        pool = self._ensure_pool()
        started = time.monotonic()
        futures = [
            (endpoint, pool.submit(self._probe_one, endpoint))
            for endpoint in snapshot
        ]

        results: List[ProbeResult] = []
        for endpoint, future in futures:
            remaining = max(
                0.0, started + endpoint.timeout_seconds - time.monotonic()
            )
            try:
                result = future.result(timeout=remaining)
            except concurrent.futures.TimeoutError:
                future.cancel()
                result = ProbeResult(
                    endpoint=endpoint.name,
                    ok=False,
                    latency_ms=endpoint.timeout_seconds * 1000.0,
                    error=f"probe timed out after {endpoint.timeout_seconds}s",
                )
                logger.warning(f"Probe of {endpoint.name} timed out")
            self._apply(result)
            results.append(result)

        with self._lock:
            self._cycles += 1
        return results

    @property
    def last_reports(self) -> Dict[str, ProbeResult]:
        """Latest probe result per endpoint."""
        with self._lock:
            return dict(self._last_reports)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Health check cycle failed: {e}")
            self._wake_event.wait(self.interval_seconds)
            self._wake_event.clear()

    def _ensure_pool(self) -> concurrent.futures.ThreadPoolExecutor:
        with self._lock:
            if self._pool is None:
                self._pool = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="rpc-gateway-probe",
                )
            return self._pool

    def _probe_one(self, endpoint: EndpointSnapshot) -> ProbeResult:
        t0 = time.monotonic()
        try:
            session = self.session_factory.session_for(endpoint)
            value = self.probe(session)
        except Exception as e:
            latency = (time.monotonic() - t0) * 1000.0
            logger.warning(f"Probe of {endpoint.name} failed: {e}")
            return ProbeResult(
                endpoint=endpoint.name,
                ok=False,
                latency_ms=latency,
                error=f"{type(e).__name__}: {e}",
            )

        latency = (time.monotonic() - t0) * 1000.0
        return ProbeResult(
            endpoint=endpoint.name,
            ok=True,
            latency_ms=latency,
            height=value if isinstance(value, int) else None,
        )

    def _apply(self, result: ProbeResult) -> None:
        """Write a probe result into the registry."""
        if self.registry.find(result.endpoint) is None:
            # Registry was replaced mid-cycle.
            return

        with self._lock:
            self._last_reports[result.endpoint] = result

        if result.ok:
            recovered = self.registry.mark_healthy(result.endpoint)
            if recovered:
                logger.info(f"Endpoint {result.endpoint} recovered")
                self._invalidate(None)
        else:
            flipped = self.registry.mark_unhealthy(result.endpoint)
            if flipped:
                self._invalidate(result.endpoint)

        if self.observability is not None:
            self.observability.record_timing(
                "probe_latency_seconds",
                result.latency_ms / 1000.0,
                tags={"endpoint": result.endpoint, "ok": str(result.ok).lower()},
            )
            if not result.ok:
                self.observability.log_event(
                    "probe_failed",
                    {"endpoint": result.endpoint, "error": result.error},
                    level="warning",
                )

    def _invalidate(self, endpoint: Optional[str]) -> None:
        if self.invalidate_selection is None:
            return
        try:
            self.invalidate_selection(endpoint)
        except Exception as e:
            logger.warning(f"Selection invalidation failed: {e}")
