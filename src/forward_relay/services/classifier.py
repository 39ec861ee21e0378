"""Mapping of structured failures onto the relay's error vocabulary."""

from __future__ import annotations

import logging

from forward_relay.services.errors import ErrorKind, RelayError, message_for
from forward_relay.services.executor import SubmissionFailure
from forward_relay.services.outcomes import Confirmed, Failed, Rejected, RelayOutcome
from forward_relay.services.receipts import ReceiptState, WaitResult

logger = logging.getLogger(__name__)


class ErrorClassifier:
    """Build terminal outcomes with fixed user-facing messages.

    The raw cause is attached as ``detail`` only when ``verbose`` is set so
    RPC and execution-engine phrasing never reaches clients in production.
    """

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    def _detail(self, detail: str | None) -> str | None:
        return detail if self.verbose else None

    def reject(self, kind: ErrorKind, detail: str | None = None) -> Rejected:
        return Rejected(kind, message_for(kind), self._detail(detail))

    def fail(
        self, kind: ErrorKind, detail: str | None = None, *, tx_hash: str | None = None
    ) -> Failed:
        return Failed(kind, message_for(kind), self._detail(detail), tx_hash)

    def from_error(self, error: RelayError) -> Rejected:
        """Classify a gate rejection raised before submission."""
        return self.reject(error.kind, error.detail)

    def from_submission(self, failure: SubmissionFailure) -> Failed:
        detail = failure.reason.value
        if failure.detail:
            detail = f"{detail}: {failure.detail}"
        return self.fail(ErrorKind.SUBMISSION_FAILED, detail)

    def from_wait(self, result: WaitResult) -> RelayOutcome:
        """Classify the terminal state of a confirmation wait."""
        if result.state is ReceiptState.CONFIRMED:
            return Confirmed(result.tx_hash, result.block_number or 0, result.gas_used or 0)
        if result.state is ReceiptState.REVERTED:
            detail = f"reverted in block {result.block_number}"
            return self.fail(ErrorKind.REVERTED, detail, tx_hash=result.tx_hash)
        if result.state is ReceiptState.TIMEOUT:
            return self.fail(
                ErrorKind.CONFIRMATION_TIMEOUT, "no receipt before deadline", tx_hash=result.tx_hash
            )
        return self.fail(ErrorKind.EXECUTION_FAILED, f"unexpected state {result.state.value}")

    def from_exception(self, error: BaseException) -> Failed:
        """Classify an unexpected infrastructure error as ``ExecutionFailed``."""
        if isinstance(error, RelayError):
            return self.fail(error.kind, error.detail)
        return self.fail(ErrorKind.EXECUTION_FAILED, f"{type(error).__name__}: {error}")
