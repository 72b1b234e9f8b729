"""
Gateway Client - Named Chain Operations over the Resilient Executor.

Each operation marshals its parameters, hands a small callable to
ResilientExecutor.execute, and converts the result back to plain Python
types. There is no retry or selection logic here.

Read-only operations are retried with failover. submit() broadcasts a
signed transaction and is attempted once unless the caller opts into
idempotent mode, where the transaction hash is used as idempotency key:
every attempt first asks the chosen endpoint whether the hash is already
known and only broadcasts if it is not.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TransactionNotFound

from rpc_gateway.domain.exceptions import ExhaustedRetries, PermanentOperationError
from rpc_gateway.resilience.cancellation import CancellationToken
from rpc_gateway.resilience.executor import ResilientExecutor

logger = logging.getLogger(__name__)

BlockIdentifier = Union[str, int]

_ALREADY_KNOWN_MARKERS = ("already known", "known transaction", "already imported")


def _to_hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


class GatewayClient:
    """Chain operations routed through a ResilientExecutor."""

    def __init__(self, executor: ResilientExecutor) -> None:
        self.executor = executor

    def get_balance(
        self,
        address: str,
        block: BlockIdentifier = "latest",
        cancel: Optional[CancellationToken] = None,
    ) -> int:
        """
        Balance of an account in wei.

        Raises:
            PermanentOperationError: If the address is malformed
        """
        checksum = self._checksum(address)
        return self.executor.execute(
            lambda session: int(session.eth.get_balance(checksum, block)),
            cancel=cancel,
            operation_name="get_balance",
        )

    def get_latest_height(self, cancel: Optional[CancellationToken] = None) -> int:
        """Current block number."""
        return self.executor.execute(
            lambda session: int(session.eth.block_number),
            cancel=cancel,
            operation_name="get_latest_height",
        )

    def get_gas_price(self, cancel: Optional[CancellationToken] = None) -> int:
        """Current gas price in wei."""
        return self.executor.execute(
            lambda session: int(session.eth.gas_price),
            cancel=cancel,
            operation_name="get_gas_price",
        )

    def estimate_gas(
        self,
        transaction: Dict[str, Any],
        cancel: Optional[CancellationToken] = None,
    ) -> int:
        """
        Gas estimate for an unsigned transaction.

        Args:
            transaction: Transaction fields ("to", "from", "value", "data", ...)
        """
        tx = dict(transaction)
        for key in ("to", "from"):
            if tx.get(key):
                tx[key] = self._checksum(tx[key])
        return self.executor.execute(
            lambda session: int(session.eth.estimate_gas(tx)),
            cancel=cancel,
            operation_name="estimate_gas",
        )

    def get_block(
        self,
        identifier: BlockIdentifier = "latest",
        cancel: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """Block header (and transaction hashes) by number, hash or tag."""
        return self.executor.execute(
            lambda session: dict(session.eth.get_block(identifier)),
            cancel=cancel,
            operation_name="get_block",
        )

    def get_transaction(
        self,
        tx_hash: str,
        cancel: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """
        Transaction by hash.

        Raises:
            PermanentOperationError: If no endpoint knows the transaction
        """
        return self.executor.execute(
            lambda session: dict(session.eth.get_transaction(tx_hash)),
            cancel=cancel,
            operation_name="get_transaction",
        )

    def submit(
        self,
        raw_transaction: Union[bytes, str],
        idempotent: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> str:
        """
        Broadcast a signed transaction.

        Args:
            raw_transaction: Signed transaction bytes or 0x-hex string
            idempotent: Allow retries, deduplicated by transaction hash
            cancel: Optional cancellation token

        Returns:
            Transaction hash as 0x-hex string

        Raises:
            ExhaustedRetries: When the broadcast could not be confirmed;
                without idempotent=True the transaction may still have
                reached the network
        """
        raw = self._raw_bytes(raw_transaction)
        tx_hash = _to_hex(Web3.keccak(raw))

        def send(session: Any) -> str:
            if idempotent and self._is_known(session, tx_hash):
                logger.info(f"Transaction {tx_hash} already known, not rebroadcasting")
                return tx_hash
            try:
                return _to_hex(session.eth.send_raw_transaction(raw))
            except Exception as e:
                if _is_already_known(e):
                    return tx_hash
                raise

        try:
            return self.executor.execute(
                send,
                cancel=cancel,
                retry_safe=idempotent,
                operation_name="submit",
            )
        except ExhaustedRetries:
            if not idempotent:
                logger.warning(
                    f"Broadcast of {tx_hash} failed ambiguously; "
                    f"it may have reached the network"
                )
            raise

    @staticmethod
    def _is_known(session: Any, tx_hash: str) -> bool:
        try:
            session.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return False
        return True

    @staticmethod
    def _checksum(address: str) -> str:
        if not isinstance(address, str) or not Web3.is_address(address):
            raise PermanentOperationError(f"Invalid address: {address!r}")
        return Web3.to_checksum_address(address)

    @staticmethod
    def _raw_bytes(raw_transaction: Union[bytes, str]) -> bytes:
        try:
            raw = bytes(HexBytes(raw_transaction))
        except (TypeError, ValueError) as e:
            raise PermanentOperationError(f"Malformed raw transaction: {e}") from e
        if not raw:
            raise PermanentOperationError("Empty raw transaction")
        return raw


def _is_already_known(error: BaseException) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _ALREADY_KNOWN_MARKERS)
