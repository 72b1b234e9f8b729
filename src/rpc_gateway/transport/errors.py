"""
Error Classification - Map Transport Failures onto the Gateway Taxonomy.

Transient (endpoint suspect, fail over):
    - connection errors, timeouts, truncated/malformed responses
    - HTTP 429 and 5xx
    - JSON-RPC "limit exceeded" (-32005)

Permanent (caller's problem, do not retry):
    - JSON-RPC rejections, reverts, unknown tx/block
    - bad input (ValueError/TypeError) raised while marshaling

Anything unrecognized is treated as transient.
"""

from __future__ import annotations

import concurrent.futures
import json
from typing import Optional

import requests
from web3.exceptions import (
    BadResponseFormat,
    BlockNotFound,
    ContractLogicError,
    ProviderConnectionError,
    TransactionNotFound,
    Web3Exception,
    Web3RPCError,
)

from rpc_gateway.domain.exceptions import (
    GatewayError,
    PermanentOperationError,
    TransientEndpointError,
)

RATE_LIMIT_RPC_CODES = frozenset({-32005})

_TRANSIENT_TYPES = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
    ProviderConnectionError,
    BadResponseFormat,
    json.JSONDecodeError,
    concurrent.futures.TimeoutError,
    TimeoutError,
    ConnectionError,
)

_PERMANENT_TYPES = (
    ContractLogicError,
    TransactionNotFound,
    BlockNotFound,
    ValueError,
    TypeError,
    Web3Exception,
)


def classify_error(
    error: BaseException,
    endpoint: Optional[str] = None,
) -> GatewayError:
    """
    Wrap an exception in the matching gateway error.

    Args:
        error: Exception raised by an operation or probe
        endpoint: Endpoint the operation ran against

    Returns:
        TransientEndpointError or PermanentOperationError (the error itself
        if it already is one)
    """
    if isinstance(error, (TransientEndpointError, PermanentOperationError)):
        return error

    if isinstance(error, GatewayError):
        return PermanentOperationError(str(error), endpoint=endpoint, cause=error)

    if isinstance(error, _TRANSIENT_TYPES):
        return TransientEndpointError(
            f"{type(error).__name__}: {error}", endpoint=endpoint, cause=error
        )

    if isinstance(error, requests.exceptions.HTTPError):
        status = getattr(error.response, "status_code", None)
        if status is None or status == 429 or status >= 500:
            return TransientEndpointError(
                f"HTTP {status}: {error}", endpoint=endpoint, cause=error
            )
        return PermanentOperationError(
            f"HTTP {status}: {error}", endpoint=endpoint, cause=error
        )

    if isinstance(error, Web3RPCError):
        if _rpc_code(error) in RATE_LIMIT_RPC_CODES:
            return TransientEndpointError(
                f"Rate limited: {error}", endpoint=endpoint, cause=error
            )
        return PermanentOperationError(
            f"Rejected by node: {error}", endpoint=endpoint, cause=error
        )

    if isinstance(error, _PERMANENT_TYPES):
        return PermanentOperationError(
            f"{type(error).__name__}: {error}", endpoint=endpoint, cause=error
        )

    return TransientEndpointError(
        f"Unexpected {type(error).__name__}: {error}", endpoint=endpoint, cause=error
    )


def is_transient(error: BaseException) -> bool:
    """True if the error warrants failover."""
    return isinstance(classify_error(error), TransientEndpointError)


def _rpc_code(error: Web3RPCError) -> Optional[int]:
    response = getattr(error, "rpc_response", None) or {}
    rpc_error = response.get("error") if isinstance(response, dict) else None
    if isinstance(rpc_error, dict):
        return rpc_error.get("code")
    return None
