from forward_relay.services.classifier import ErrorClassifier
from forward_relay.services.errors import (
    ErrorKind,
    MalformedReason,
    MalformedRequestError,
    RelayError,
    SubmissionReason,
    message_for,
    status_for,
)
from forward_relay.services.executor import SubmissionFailure
from forward_relay.services.outcomes import Confirmed, Failed, Rejected
from forward_relay.services.receipts import ReceiptState, WaitResult


def test_gate_error_keeps_kind_and_fixed_message() -> None:
    outcome = ErrorClassifier().from_error(RelayError(ErrorKind.EXPIRED, "deadline 1 < 2"))

    assert isinstance(outcome, Rejected)
    assert outcome.kind is ErrorKind.EXPIRED
    assert outcome.message == "Transaction deadline expired"
    assert outcome.detail is None


def test_verbose_classifier_keeps_detail() -> None:
    error = MalformedRequestError(MalformedReason.MISSING_FIELD, "forward.caller: missing")
    outcome = ErrorClassifier(verbose=True).from_error(error)

    assert outcome.kind is ErrorKind.MALFORMED_REQUEST
    assert outcome.detail == "MissingField: forward.caller: missing"


def test_submission_failure_hides_rpc_text() -> None:
    failure = SubmissionFailure(SubmissionReason.NONCE_CONFLICT, "nonce too low")
    outcome = ErrorClassifier().from_submission(failure)

    assert isinstance(outcome, Failed)
    assert outcome.kind is ErrorKind.SUBMISSION_FAILED
    assert "nonce" not in outcome.message


def test_wait_results_map_to_outcomes() -> None:
    classifier = ErrorClassifier()

    confirmed = classifier.from_wait(WaitResult(ReceiptState.CONFIRMED, "0xaa", 10, 50_000))
    assert confirmed == Confirmed("0xaa", 10, 50_000)

    reverted = classifier.from_wait(WaitResult(ReceiptState.REVERTED, "0xaa", 10, 50_000))
    assert reverted.kind is ErrorKind.REVERTED
    assert reverted.tx_hash == "0xaa"

    timeout = classifier.from_wait(WaitResult(ReceiptState.TIMEOUT, "0xaa"))
    assert timeout.kind is ErrorKind.CONFIRMATION_TIMEOUT


def test_unknown_exception_is_execution_failed() -> None:
    outcome = ErrorClassifier().from_exception(KeyError("boom"))
    assert outcome.kind is ErrorKind.EXECUTION_FAILED


def test_status_codes() -> None:
    assert status_for(ErrorKind.RATE_LIMITED) == 429
    assert status_for(ErrorKind.FEE_TOO_HIGH) == 503
    assert status_for(ErrorKind.HASH_MISMATCH) == 400
    assert status_for(ErrorKind.REVERTED) == 500
    assert message_for(ErrorKind.FEE_TOO_HIGH).startswith("Network gas prices too high")
