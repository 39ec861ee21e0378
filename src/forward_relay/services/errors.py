"""Stable error vocabulary for relay responses.

Every failure the relay reports to a client is one of the `ErrorKind`
members below. The HTTP status and the user-facing message are fixed per
kind so that responses never leak RPC or execution-engine phrasing; the raw
cause travels separately as ``detail`` and is only exposed in debug mode.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced to relay clients."""

    MALFORMED_REQUEST = "MalformedRequest"
    RATE_LIMITED = "RateLimited"
    DUPLICATE_REQUEST = "DuplicateRequest"
    INVALID_TARGET = "InvalidTarget"
    INVALID_CALLER = "InvalidCaller"
    HASH_MISMATCH = "HashMismatch"
    EXPIRED = "Expired"
    ALREADY_COMPLETED = "AlreadyCompleted"
    FEE_TOO_HIGH = "FeeTooHigh"
    SUBMISSION_FAILED = "SubmissionFailed"
    REVERTED = "Reverted"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeout"
    EXECUTION_FAILED = "ExecutionFailed"


class MalformedReason(str, Enum):
    """Structural failure reasons reported by the authorization validator."""

    MALFORMED_BODY = "MalformedBody"
    MISSING_FIELD = "MissingField"


class SubmissionReason(str, Enum):
    """Structured causes for a failed transaction submission."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    NONCE_CONFLICT = "nonce_conflict"
    UNDERPRICED = "underpriced"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"


ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.MALFORMED_REQUEST: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.DUPLICATE_REQUEST: 400,
    ErrorKind.INVALID_TARGET: 400,
    ErrorKind.INVALID_CALLER: 400,
    ErrorKind.HASH_MISMATCH: 400,
    ErrorKind.EXPIRED: 400,
    ErrorKind.ALREADY_COMPLETED: 400,
    ErrorKind.FEE_TOO_HIGH: 503,
    ErrorKind.SUBMISSION_FAILED: 500,
    ErrorKind.REVERTED: 500,
    ErrorKind.CONFIRMATION_TIMEOUT: 500,
    ErrorKind.EXECUTION_FAILED: 500,
}

ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.MALFORMED_REQUEST: "Malformed request body or missing required fields",
    ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorKind.DUPLICATE_REQUEST: "This request has already been processed",
    ErrorKind.INVALID_TARGET: "Invalid target contract",
    ErrorKind.INVALID_CALLER: "Invalid caller address",
    ErrorKind.HASH_MISMATCH: "DataHash mismatch - signature invalid",
    ErrorKind.EXPIRED: "Transaction deadline expired",
    ErrorKind.ALREADY_COMPLETED: "This address has already completed this action",
    ErrorKind.FEE_TOO_HIGH: "Network gas prices too high. Please try again later.",
    ErrorKind.SUBMISSION_FAILED: "Transaction could not be submitted",
    ErrorKind.REVERTED: "Transaction reverted on-chain",
    ErrorKind.CONFIRMATION_TIMEOUT: "Timed out waiting for transaction confirmation",
    ErrorKind.EXECUTION_FAILED: "Transaction failed",
}


class RelayError(RuntimeError):
    """Base exception for failures that map onto an `ErrorKind`.

    Gates raise this (or a subclass) to short-circuit the pipeline; the
    pipeline turns it into a terminal outcome.
    """

    def __init__(self, kind: ErrorKind, detail: str | None = None) -> None:
        super().__init__(detail or ERROR_MESSAGES[kind])
        self.kind = kind
        self.detail = detail


class MalformedRequestError(RelayError):
    """Raised when a request body cannot be shaped into an authorization."""

    def __init__(self, reason: MalformedReason, detail: str | None = None) -> None:
        text = f"{reason.value}: {detail}" if detail else reason.value
        super().__init__(ErrorKind.MALFORMED_REQUEST, text)
        self.reason = reason


def status_for(kind: ErrorKind) -> int:
    """Return the HTTP status code for an error kind."""
    return ERROR_STATUS.get(kind, 500)


def message_for(kind: ErrorKind) -> str:
    """Return the fixed user-facing message for an error kind."""
    return ERROR_MESSAGES.get(kind, ERROR_MESSAGES[ErrorKind.EXECUTION_FAILED])
