"""
Transport Package - Sessions and Error Classification.
"""

from rpc_gateway.transport.errors import classify_error, is_transient
from rpc_gateway.transport.session import (
    SessionFactoryProtocol,
    Web3SessionFactory,
)

__all__ = [
    "SessionFactoryProtocol",
    "Web3SessionFactory",
    "classify_error",
    "is_transient",
]
