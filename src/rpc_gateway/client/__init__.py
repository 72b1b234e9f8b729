"""
Client Package - Named Chain Operations.
"""

from rpc_gateway.client.facade import GatewayClient

__all__ = ["GatewayClient"]
