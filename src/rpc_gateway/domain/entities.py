"""
Core Domain Entities.

Endpoint descriptors are immutable; their health lives beside them in the
registry and is exposed to the rest of the gateway as frozen snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EndpointDescriptor(BaseModel):
    """Static description of one remote node."""

    name: str = Field(..., min_length=1, description="Display/log identity")
    address: str = Field(..., min_length=1, description="Connection URL")
    priority: int = Field(default=0, description="Lower is more preferred")
    max_retries: int = Field(default=3, ge=0, description="Advisory retry hint")
    timeout_seconds: float = Field(
        default=10.0, gt=0, description="Per-call timeout budget"
    )

    model_config = {"frozen": True}


@dataclass(frozen=True)
class EndpointSnapshot:
    """Point-in-time view of a descriptor and its health."""

    descriptor: EndpointDescriptor
    position: int
    is_healthy: bool
    last_checked_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def address(self) -> str:
        return self.descriptor.address

    @property
    def priority(self) -> int:
        return self.descriptor.priority

    @property
    def timeout_seconds(self) -> float:
        return self.descriptor.timeout_seconds

    @property
    def sort_key(self) -> tuple[int, int]:
        """Priority first, insertion order breaks ties."""
        return (self.descriptor.priority, self.position)


@dataclass(frozen=True)
class ActiveSelection:
    """The endpoint currently preferred by an executor. Never persisted."""

    endpoint: str
    generation: int
    selected_at: datetime
    degraded: bool = False
