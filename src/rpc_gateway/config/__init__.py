"""
Configuration Package - Models and Loaders.

Configuration Structure:
    - GatewayConfig: Root configuration object
    - EndpointConfig: One remote node (name, address, priority, timeout)
    - RetryConfig: Attempt budget and backoff strategy
    - MonitorConfig: Probe interval and concurrency

Design Principles:
    - Type-safe via Pydantic
    - Validation on load (fail fast)
    - Support for profiles (mainnet, testnet)
"""

from rpc_gateway.config.models import (
    EndpointConfig,
    GatewayConfig,
    MonitorConfig,
    RetryConfig,
)

__all__ = ["EndpointConfig", "GatewayConfig", "MonitorConfig", "RetryConfig"]
