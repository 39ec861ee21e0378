"""Out-of-band follow-up for transactions whose confirmation wait timed out.

A timed-out request is answered with ``ConfirmationTimeout`` but the
transaction may still be mined later. The `PendingReconciler` keeps the hash,
re-checks its receipt on each sweep, and remembers the final state for a
retention period so clients can look it up.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from threading import Lock
from typing import Final

from forward_relay.services.chain import ChainBackend, ChainError
from forward_relay.services.receipts import ReceiptState, result_from_receipt

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS: Final[float] = 3600.0


@dataclass(frozen=True)
class TrackedTransaction:
    tx_hash: str
    state: ReceiptState
    updated_at: float
    block_number: int | None = None
    gas_used: int | None = None


class PendingReconciler:
    """Track timed-out transactions until their receipt shows up."""

    def __init__(
        self,
        chain: ChainBackend,
        *,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._chain = chain
        self._retention = float(retention_seconds)
        self._clock = clock
        self._entries: dict[str, TrackedTransaction] = {}
        self._lock = Lock()

    def record(
        self,
        tx_hash: str,
        state: ReceiptState,
        *,
        block_number: int | None = None,
        gas_used: int | None = None,
    ) -> None:
        """Remember the latest known state of ``tx_hash``."""
        entry = TrackedTransaction(tx_hash.lower(), state, self._clock(), block_number, gas_used)
        with self._lock:
            self._entries[entry.tx_hash] = entry

    def record_timeout(self, tx_hash: str) -> None:
        logger.info("Tracking %s for reconciliation", tx_hash)
        self.record(tx_hash, ReceiptState.SUBMITTED)

    def status(self, tx_hash: str) -> TrackedTransaction | None:
        with self._lock:
            return self._entries.get(tx_hash.lower())

    def pending(self) -> list[str]:
        with self._lock:
            return [
                entry.tx_hash
                for entry in self._entries.values()
                if entry.state is ReceiptState.SUBMITTED
            ]

    async def reconcile(self) -> int:
        """Re-check every pending hash once; return how many were resolved."""
        resolved = 0
        for tx_hash in self.pending():
            try:
                receipt = await self._chain.get_receipt(tx_hash)
            except ChainError as err:
                logger.warning("Reconciliation lookup for %s failed: %s", tx_hash, err)
                continue
            if receipt is None:
                continue
            result = result_from_receipt(tx_hash, receipt)
            with self._lock:
                current = self._entries.get(tx_hash)
                if current is None:
                    continue
                self._entries[tx_hash] = replace(
                    current,
                    state=result.state,
                    updated_at=self._clock(),
                    block_number=result.block_number,
                    gas_used=result.gas_used,
                )
            logger.info("Reconciled %s as %s", tx_hash, result.state.value)
            resolved += 1
        return resolved

    def purge_expired(self) -> int:
        """Forget entries not updated within the retention period."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if now - entry.updated_at >= self._retention
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
