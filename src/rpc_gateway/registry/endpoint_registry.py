"""
Endpoint Registry - Descriptors and Live Health State.

Holds the configured endpoints in a fixed order together with their
health flags. Reads return immutable snapshots; the only writes are the
two health mutators and a whole-set replace, all under one lock.
Health updates for names a replace() has dropped are ignored.

Design Notes:
    - Optimistic default: every endpoint starts healthy
    - Last writer wins on a single endpoint's flag (soft state)
    - generation increments on replace so cached selections can be discarded
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rpc_gateway.domain.entities import EndpointDescriptor, EndpointSnapshot
from rpc_gateway.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def validate_descriptors(descriptors: Sequence[EndpointDescriptor]) -> None:
    """
    Check that a descriptor set is usable.

    Raises:
        ConfigurationError: If empty or names are not unique
    """
    if not descriptors:
        raise ConfigurationError("At least one endpoint must be configured")

    seen: set[str] = set()
    for descriptor in descriptors:
        if descriptor.name in seen:
            raise ConfigurationError(f"Duplicate endpoint name: {descriptor.name}")
        seen.add(descriptor.name)


@dataclass
class _HealthState:
    """Mutable health fields for one endpoint."""
    is_healthy: bool = True
    last_checked_at: Optional[datetime] = None


class EndpointRegistry:
    """
    Ordered endpoint descriptors plus synchronized health state.

    No selection logic lives here; see rpc_gateway.selection.
    """

    def __init__(self, descriptors: Iterable[EndpointDescriptor]) -> None:
        """
        Initialize registry.

        Args:
            descriptors: Endpoints in configuration order

        Raises:
            ConfigurationError: If no endpoints are given or names repeat
        """
        self._lock = threading.Lock()
        self._generation = 0
        self._load(list(descriptors))

    def _load(self, descriptors: List[EndpointDescriptor]) -> None:
        validate_descriptors(descriptors)
        self._descriptors: Tuple[EndpointDescriptor, ...] = tuple(descriptors)
        self._positions: Dict[str, int] = {
            d.name: i for i, d in enumerate(self._descriptors)
        }
        self._health: Dict[str, _HealthState] = {
            d.name: _HealthState() for d in self._descriptors
        }

    @property
    def generation(self) -> int:
        """Incremented every time the descriptor set is replaced."""
        with self._lock:
            return self._generation

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._positions

    def names(self) -> List[str]:
        """Endpoint names in configuration order."""
        with self._lock:
            return [d.name for d in self._descriptors]

    def list(self) -> Tuple[EndpointSnapshot, ...]:
        """
        Snapshot of all endpoints, most preferred first.

        Returns:
            Tuple sorted by (priority, insertion position)
        """
        with self._lock:
            snapshots = [self._snapshot(d) for d in self._descriptors]
        return tuple(sorted(snapshots, key=lambda s: s.sort_key))

    def get(self, name: str) -> EndpointSnapshot:
        """
        Snapshot of a single endpoint.

        Raises:
            KeyError: If the endpoint is unknown
        """
        with self._lock:
            position = self._positions[name]
            return self._snapshot(self._descriptors[position])

    def find(self, name: str) -> Optional[EndpointSnapshot]:
        """Snapshot of a single endpoint, or None if it is not registered."""
        with self._lock:
            position = self._positions.get(name)
            if position is None:
                return None
            return self._snapshot(self._descriptors[position])

    def mark_healthy(self, name: str) -> bool:
        """
        Mark an endpoint healthy.

        Returns:
            True if the flag changed; False if unchanged or the endpoint
            is no longer registered
        """
        return self._set_health(name, True)

    def mark_unhealthy(self, name: str) -> bool:
        """
        Mark an endpoint unhealthy.

        Returns:
            True if the flag changed; False if unchanged or the endpoint
            is no longer registered
        """
        return self._set_health(name, False)

    def replace(self, descriptors: Iterable[EndpointDescriptor]) -> None:
        """
        Swap the whole endpoint set atomically.

        All endpoints in the new set start healthy. The previous set is
        kept if the new one is invalid.

        Raises:
            ConfigurationError: If the new set is empty or names repeat
        """
        new_descriptors = list(descriptors)
        validate_descriptors(new_descriptors)
        with self._lock:
            self._load(new_descriptors)
            self._generation += 1
            generation = self._generation
        logger.info(
            f"Endpoint registry replaced with {len(new_descriptors)} endpoints "
            f"(generation {generation})"
        )

    def _set_health(self, name: str, healthy: bool) -> bool:
        with self._lock:
            state = self._health.get(name)
            if state is None:
                # Dropped by a concurrent replace().
                logger.debug(f"Ignoring health update for unknown endpoint {name}")
                return False
            changed = state.is_healthy != healthy
            state.is_healthy = healthy
            state.last_checked_at = datetime.now()

        if changed:
            logger.info(
                f"Endpoint {name} is now {'healthy' if healthy else 'unhealthy'}"
            )
        return changed

    def _snapshot(self, descriptor: EndpointDescriptor) -> EndpointSnapshot:
        state = self._health[descriptor.name]
        return EndpointSnapshot(
            descriptor=descriptor,
            position=self._positions[descriptor.name],
            is_healthy=state.is_healthy,
            last_checked_at=state.last_checked_at,
        )
