"""
Session Factory - web3 Sessions Bound to One Endpoint.

A session is a Web3 instance over HTTPProvider whose request timeout is
the endpoint's timeout budget. Sessions are cached per endpoint and
rebuilt when the endpoint's address or timeout changes.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Protocol, Tuple

from web3 import Web3

from rpc_gateway.domain.entities import EndpointSnapshot


class SessionFactoryProtocol(Protocol):
    """Protocol for session factories."""

    def session_for(self, endpoint: EndpointSnapshot) -> Any:
        ...


class Web3SessionFactory:
    """Builds and caches Web3 HTTP sessions."""

    def __init__(self, request_kwargs: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize factory.

        Args:
            request_kwargs: Extra keyword arguments for requests
                (headers, proxies); timeout always comes from the endpoint
        """
        self._request_kwargs = dict(request_kwargs or {})
        self._sessions: Dict[str, Tuple[Tuple[str, float], Web3]] = {}
        self._lock = threading.Lock()

    def session_for(self, endpoint: EndpointSnapshot) -> Web3:
        """Return a session connected to the given endpoint."""
        key = (endpoint.address, endpoint.timeout_seconds)
        with self._lock:
            cached = self._sessions.get(endpoint.name)
            if cached is not None and cached[0] == key:
                return cached[1]

            session = self._build(endpoint)
            self._sessions[endpoint.name] = (key, session)
            return session

    def clear(self) -> None:
        """Drop all cached sessions."""
        with self._lock:
            self._sessions.clear()

    def _build(self, endpoint: EndpointSnapshot) -> Web3:
        request_kwargs = {**self._request_kwargs, "timeout": endpoint.timeout_seconds}
        # Retries belong to the executor; one attempt is one HTTP request.
        provider = Web3.HTTPProvider(
            endpoint.address,
            request_kwargs=request_kwargs,
            exception_retry_configuration=None,
        )
        return Web3(provider)
