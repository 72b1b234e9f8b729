"""
Selection Package - Priority-Based Endpoint Selection.
"""

from rpc_gateway.selection.selector import (
    EndpointSelector,
    Selection,
    select_endpoint,
)

__all__ = ["EndpointSelector", "Selection", "select_endpoint"]
