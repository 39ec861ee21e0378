"""Chain access for the relay.

This module provides the `ChainClient` class that wraps an `AsyncWeb3`
JSON-RPC connection with the handful of calls the relay needs. It includes:

- view calls and ABI helpers used by the status probe
- fee, gas and sequence-counter queries used before submission
- raw transaction broadcast and receipt lookup
- translation of RPC error payloads into a `SubmissionReason`
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any, Protocol, TypeVar

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from forward_relay.services.errors import SubmissionReason

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NONCE_MARKERS = ("nonce too low", "nonce too high", "already known", "invalid nonce")
_UNDERPRICED_MARKERS = ("underpriced", "fee too low", "max fee per gas less than block base fee")


class ChainError(RuntimeError):
    """Raised when a JSON-RPC call fails.

    ``reason`` is the structured cause; callers should branch on it rather
    than on the message text.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: SubmissionReason = SubmissionReason.UNAVAILABLE,
        method: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.method = method


class ChainBackend(Protocol):
    """Subset of chain operations used by the relay pipeline."""

    async def gas_price(self) -> int: ...

    async def call(self, to: str, data: bytes) -> bytes: ...

    async def estimate_gas(self, tx: Mapping[str, Any]) -> int: ...

    async def pending_nonce(self, address: str) -> int: ...

    async def send_raw_transaction(self, raw_transaction: bytes) -> str: ...

    async def get_receipt(self, tx_hash: str) -> Mapping[str, Any] | None: ...


def _error_text(error: BaseException) -> str:
    """Extract the RPC error message from web3's exception payloads."""
    if error.args and isinstance(error.args[0], Mapping):
        payload = error.args[0]
        return str(payload.get("message") or payload)
    return str(error)


def classify_rpc_error(error: BaseException) -> SubmissionReason:
    """Map a raw RPC failure onto a `SubmissionReason`."""
    if isinstance(error, (OSError, asyncio.TimeoutError)):
        return SubmissionReason.UNAVAILABLE
    text = _error_text(error).lower()
    if "insufficient funds" in text:
        return SubmissionReason.INSUFFICIENT_FUNDS
    if any(marker in text for marker in _NONCE_MARKERS):
        return SubmissionReason.NONCE_CONFLICT
    if any(marker in text for marker in _UNDERPRICED_MARKERS):
        return SubmissionReason.UNDERPRICED
    return SubmissionReason.REJECTED


def encode_call(signature: str, arg_types: Sequence[str], args: Sequence[Any]) -> bytes:
    """ABI-encode a function call given its canonical signature."""
    return function_signature_to_4byte_selector(signature) + encode(list(arg_types), list(args))


def decode_bool(data: bytes) -> bool:
    """Decode a single ABI ``bool`` return value.

    Raises:
        ChainError: If ``data`` is not an ABI ``bool``, as when the called
            address has no code and ``eth_call`` returns empty bytes.
    """
    try:
        (value,) = decode(["bool"], data)
    except DecodingError as err:
        raise ChainError(
            f"eth_call returned undecodable data: {err}",
            reason=SubmissionReason.REJECTED,
            method="eth_call",
        ) from err
    return bool(value)


class ChainClient:
    """Async JSON-RPC client bound to one endpoint."""

    def __init__(
        self, rpc_url: str, *, timeout: float = 30.0, web3: AsyncWeb3 | None = None
    ) -> None:
        self._rpc_url = rpc_url
        self._w3 = web3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )
        logger.debug("Chain client initialized for %s", rpc_url)

    @property
    def web3(self) -> AsyncWeb3:
        return self._w3

    async def _rpc(self, method: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except TransactionNotFound:
            raise
        except Exception as err:
            reason = classify_rpc_error(err)
            logger.debug("RPC %s failed (%s): %s", method, reason.value, err)
            raise ChainError(
                f"{method} failed: {_error_text(err)}", reason=reason, method=method
            ) from err

    async def gas_price(self) -> int:
        """Return the node's suggested legacy gas price in wei."""
        return int(await self._rpc("eth_gasPrice", self._w3.eth.gas_price))

    async def call(self, to: str, data: bytes) -> bytes:
        """Execute a read-only call against ``to`` at the latest block."""
        result = await self._rpc(
            "eth_call",
            self._w3.eth.call({"to": Web3.to_checksum_address(to), "data": Web3.to_hex(data)}),
        )
        return bytes(result)

    async def estimate_gas(self, tx: Mapping[str, Any]) -> int:
        return int(await self._rpc("eth_estimateGas", self._w3.eth.estimate_gas(dict(tx))))

    async def pending_nonce(self, address: str) -> int:
        """Return the next sequence counter for ``address`` including pending txs."""
        count = self._w3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending")
        return int(await self._rpc("eth_getTransactionCount", count))

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        tx_hash = await self._rpc(
            "eth_sendRawTransaction", self._w3.eth.send_raw_transaction(raw_transaction)
        )
        return Web3.to_hex(tx_hash)

    async def get_receipt(self, tx_hash: str) -> Mapping[str, Any] | None:
        """Return the receipt for ``tx_hash`` or None while it is not mined."""
        try:
            receipt = await self._rpc(
                "eth_getTransactionReceipt", self._w3.eth.get_transaction_receipt(tx_hash)
            )
        except TransactionNotFound:
            return None
        return receipt
