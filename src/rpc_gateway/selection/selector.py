"""
Endpoint Selector - Deterministic Choice of the Best Endpoint.

Selection is a pure function of a registry snapshot:
    1. Keep healthy endpoints
    2. Return the lowest (priority, position)
    3. If none are healthy, return the most preferred endpoint anyway
       and flag the selection as degraded

The degraded fallback keeps the gateway attempting calls during a total
outage instead of refusing outright.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Sequence

from rpc_gateway.domain.entities import EndpointSnapshot
from rpc_gateway.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Outcome of selecting an endpoint."""
    endpoint: EndpointSnapshot
    degraded: bool = False

    @property
    def name(self) -> str:
        return self.endpoint.name


def select_endpoint(snapshot: Sequence[EndpointSnapshot]) -> Selection:
    """
    Pick the most preferred usable endpoint.

    Args:
        snapshot: Endpoint snapshots, in any order

    Returns:
        Selection for the chosen endpoint

    Raises:
        ConfigurationError: If the snapshot is empty
    """
    if not snapshot:
        raise ConfigurationError("No endpoints available for selection")

    healthy = [s for s in snapshot if s.is_healthy]
    if healthy:
        return Selection(endpoint=min(healthy, key=lambda s: s.sort_key))

    fallback = min(snapshot, key=lambda s: s.sort_key)
    logger.critical(
        f"No healthy endpoints among {len(snapshot)}; "
        f"falling back to {fallback.name}"
    )
    return Selection(endpoint=fallback, degraded=True)


class EndpointSelector:
    """
    Stateless selector with optional avoidance of already-tried endpoints.

    Within one retry loop the executor passes the endpoints it already
    tried; they are skipped as long as an untried healthy endpoint exists.
    """

    def select(
        self,
        snapshot: Sequence[EndpointSnapshot],
        avoid: AbstractSet[str] = frozenset(),
    ) -> Selection:
        """
        Select an endpoint from a snapshot.

        Args:
            snapshot: Endpoint snapshots
            avoid: Names to skip when alternatives exist

        Returns:
            Selection for the chosen endpoint
        """
        if avoid:
            untried = [
                s for s in snapshot if s.is_healthy and s.name not in avoid
            ]
            if untried:
                return select_endpoint(untried)
        return select_endpoint(snapshot)
