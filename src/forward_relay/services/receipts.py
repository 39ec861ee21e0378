"""Bounded confirmation polling for submitted transactions."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from forward_relay.services.chain import ChainBackend, ChainError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL: Final[float] = 2.0
DEFAULT_TIMEOUT: Final[float] = 120.0


class ReceiptState(str, Enum):
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class WaitResult:
    """Terminal state of a confirmation wait."""

    state: ReceiptState
    tx_hash: str
    block_number: int | None = None
    gas_used: int | None = None


def result_from_receipt(tx_hash: str, receipt: Mapping[str, Any]) -> WaitResult:
    """Turn a mined receipt into a CONFIRMED or REVERTED result."""
    status = int(receipt.get("status", 0))
    return WaitResult(
        state=ReceiptState.CONFIRMED if status == 1 else ReceiptState.REVERTED,
        tx_hash=tx_hash,
        block_number=_as_int(receipt.get("blockNumber")),
        gas_used=_as_int(receipt.get("gasUsed")),
    )


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


class ReceiptWaiter:
    """Poll for a receipt until it is mined or the deadline passes.

    ``SUBMITTED -> CONFIRMED | REVERTED | TIMEOUT``. Transient RPC errors
    while polling are logged and do not end the wait.
    """

    def __init__(
        self,
        chain: ChainBackend,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._chain = chain
        self._poll_interval = float(poll_interval)
        self._timeout = float(timeout)
        self._clock = clock
        self._sleep = sleep

    async def wait(self, tx_hash: str) -> WaitResult:
        deadline = self._clock() + self._timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                receipt = await self._chain.get_receipt(tx_hash)
            except ChainError as err:
                logger.warning("Receipt poll for %s failed: %s", tx_hash, err)
                receipt = None

            if receipt is not None:
                result = result_from_receipt(tx_hash, receipt)
                logger.info(
                    "Transaction %s %s in block %s",
                    tx_hash,
                    result.state.value,
                    result.block_number,
                )
                return result

            logger.debug("No receipt for %s yet (attempt %d)", tx_hash, attempts)
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning("Timed out waiting for %s after %d polls", tx_hash, attempts)
                return WaitResult(ReceiptState.TIMEOUT, tx_hash)
            await self._sleep(min(self._poll_interval, remaining))
