"""Transaction construction, signing and submission for the hub's ``execute``."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Final

from eth_account.signers.local import LocalAccount
from web3 import Web3

from forward_relay.models import FORWARD_TUPLE_TYPE, RelayRequest
from forward_relay.services.chain import ChainBackend, ChainError, encode_call
from forward_relay.services.errors import SubmissionReason

logger = logging.getLogger(__name__)

EXECUTE_SIG: Final[str] = f"execute({FORWARD_TUPLE_TYPE},bytes,bytes)"
DEFAULT_GAS_LIMIT: Final[int] = 500_000
DEFAULT_BUFFER_PERCENT: Final[int] = 20


@dataclass(frozen=True)
class Submitted:
    """The signed transaction was accepted by the node."""

    tx_hash: str


@dataclass(frozen=True)
class SubmissionFailure:
    """The node refused the transaction or could not be reached."""

    reason: SubmissionReason
    detail: str | None = None


SubmissionResult = Submitted | SubmissionFailure


def encode_execute(request: RelayRequest) -> bytes:
    """ABI-encode ``execute(forward, callData, signature)`` for the hub."""
    return encode_call(
        EXECUTE_SIG,
        [FORWARD_TUPLE_TYPE, "bytes", "bytes"],
        [
            request.authorization.as_tuple(),
            request.encoded_call.call_data,
            request.encoded_call.signature,
        ],
    )


class Executor:
    """Submit forwarded calls to the hub from the relay's own account.

    Reading the sequence counter, signing and broadcasting happen under one
    `asyncio.Lock` so two in-flight requests never sign with the same counter.
    """

    def __init__(
        self,
        chain: ChainBackend,
        account: LocalAccount,
        *,
        hub_address: str,
        chain_id: int,
        buffer_percent: int = DEFAULT_BUFFER_PERCENT,
        default_gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> None:
        self._chain = chain
        self._account = account
        self._hub = Web3.to_checksum_address(hub_address)
        self._chain_id = int(chain_id)
        self._buffer_percent = int(buffer_percent)
        self._default_gas_limit = int(default_gas_limit)
        self._submit_lock = asyncio.Lock()

    @property
    def address(self) -> str:
        return self._account.address

    async def gas_limit(self, data: bytes) -> int:
        """Estimate gas for ``data`` plus the safety margin.

        Falls back to the configured default if the node cannot estimate.
        """
        try:
            estimate = await self._chain.estimate_gas(
                {"from": self._account.address, "to": self._hub, "data": Web3.to_hex(data)}
            )
        except ChainError as err:
            logger.warning(
                "Gas estimation failed, using default %d: %s", self._default_gas_limit, err
            )
            return self._default_gas_limit
        return estimate * (100 + self._buffer_percent) // 100

    async def submit(self, request: RelayRequest) -> SubmissionResult:
        """Sign and broadcast the hub call for ``request``. Never retried."""
        data = encode_execute(request)
        gas = await self.gas_limit(data)

        async with self._submit_lock:
            try:
                nonce = await self._chain.pending_nonce(self._account.address)
                gas_price = await self._chain.gas_price()
                signed = self._account.sign_transaction(
                    {
                        "to": self._hub,
                        "data": data,
                        "value": 0,
                        "gas": gas,
                        "gasPrice": gas_price,
                        "nonce": nonce,
                        "chainId": self._chain_id,
                    }
                )
                tx_hash = await self._chain.send_raw_transaction(signed.raw_transaction)
            except ChainError as err:
                logger.error("Submission failed (%s): %s", err.reason.value, err)
                return SubmissionFailure(err.reason, str(err))

        logger.info(
            "Submitted %s for %s (nonce=%d gas=%d)",
            tx_hash,
            request.authorization.sender,
            nonce,
            gas,
        )
        return Submitted(tx_hash)
