"""
Configuration Models - Pydantic Models for Type-Safe Config.

All configuration is validated at load time using Pydantic.
"""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field

from rpc_gateway.domain.entities import EndpointDescriptor

# Endpoints are configured with exactly the descriptor shape.
EndpointConfig = EndpointDescriptor


class RetryConfig(BaseModel):
    """Configuration for the failover retry loop."""

    max_attempts: int = Field(default=3, ge=1)
    strategy: Literal["constant", "linear", "exponential"] = "linear"
    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)


class MonitorConfig(BaseModel):
    """Configuration for background health probing."""

    enabled: bool = True
    interval_seconds: float = Field(default=30.0, gt=0)
    probe_workers: int = Field(default=8, ge=1)
    stale_after_seconds: float = Field(default=120.0, gt=0)


class GatewayConfig(BaseModel):
    """Root configuration object."""

    version: str = "1.0"
    name: str = "rpc_gateway"
    endpoints: List[EndpointConfig] = Field(default_factory=list)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)

    model_config = {"populate_by_name": True}
