"""
Domain Layer - Endpoint Entities and Error Taxonomy.

Pure data types with no I/O. Everything else in the gateway depends on
these; they depend on nothing but pydantic.
"""

from rpc_gateway.domain.entities import (
    ActiveSelection,
    EndpointDescriptor,
    EndpointSnapshot,
)
from rpc_gateway.domain.exceptions import (
    ConfigurationError,
    ExhaustedRetries,
    GatewayError,
    OperationCancelled,
    PermanentOperationError,
    TransientEndpointError,
)

__all__ = [
    "ActiveSelection",
    "ConfigurationError",
    "EndpointDescriptor",
    "EndpointSnapshot",
    "ExhaustedRetries",
    "GatewayError",
    "OperationCancelled",
    "PermanentOperationError",
    "TransientEndpointError",
]
