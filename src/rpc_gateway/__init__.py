"""
RPC Gateway - Resilient Access to a Pool of JSON-RPC Endpoints.

Multiplexes callers across several configured nodes that all speak the
Ethereum JSON-RPC protocol. When one node misbehaves the gateway marks it
unhealthy, backs off, and transparently retries against the next most
preferred node.

Architecture:
    - Explicit composition root (no module-level singletons)
    - Dependency Injection for testability
    - Strategy Pattern for backoff policies
    - Configuration-driven behavior via YAML

Main Components:
    - registry: Endpoint descriptors and their live health state
    - selection: Pure priority-based endpoint selection
    - resilience: Backoff policies, retry loop, failover executor
    - monitoring: Background health probes
    - transport: web3 sessions and error classification
    - client: Named chain operations (balance, height, gas, submit)
    - config: Configuration models and loaders

Example:
    >>> from rpc_gateway import create_gateway, load_config
    >>> config = load_config("config/gateway.yaml")
    >>> with create_gateway(config) as gateway:
    ...     height = gateway.client.get_latest_height()

"""

import logging

from rpc_gateway.config.loader import load_config
from rpc_gateway.domain.exceptions import (
    ConfigurationError,
    ExhaustedRetries,
    GatewayError,
    OperationCancelled,
    PermanentOperationError,
    TransientEndpointError,
)
from rpc_gateway.gateway import Gateway, create_gateway

__version__ = "0.2.0"


def configure_logging(
    level: int = logging.INFO,
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
) -> None:
    """
    Configure logging for the gateway.

    Call this at application startup to see log messages.
    By default, only WARNING and above are visible.

    Args:
        level: Logging level (default: INFO)
        format: Log message format

    Example:
        >>> import rpc_gateway
        >>> rpc_gateway.configure_logging(logging.DEBUG)
    """
    logging.basicConfig(
        level=level,
        format=format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("rpc_gateway").setLevel(level)


__all__ = [
    "ConfigurationError",
    "ExhaustedRetries",
    "Gateway",
    "GatewayError",
    "OperationCancelled",
    "PermanentOperationError",
    "TransientEndpointError",
    "configure_logging",
    "create_gateway",
    "load_config",
]
