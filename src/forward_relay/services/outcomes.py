"""Tagged result types produced by the relay pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from forward_relay.services.errors import ErrorKind


@dataclass(frozen=True)
class Confirmed:
    """The forwarded call was mined and succeeded."""

    tx_hash: str
    block_number: int
    fee_used: int


@dataclass(frozen=True)
class Rejected:
    """The request never reached submission; no relay funds were spent."""

    kind: ErrorKind
    message: str
    detail: str | None = None


@dataclass(frozen=True)
class Failed:
    """Submission was attempted (or infrastructure broke) and did not confirm."""

    kind: ErrorKind
    message: str
    detail: str | None = None
    tx_hash: str | None = None


RelayOutcome = Confirmed | Rejected | Failed
