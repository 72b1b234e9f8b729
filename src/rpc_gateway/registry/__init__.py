"""
Registry Package - Endpoint Descriptors and Health State.
"""

from rpc_gateway.registry.endpoint_registry import (
    EndpointRegistry,
    validate_descriptors,
)

__all__ = ["EndpointRegistry", "validate_descriptors"]
