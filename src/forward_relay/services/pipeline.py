"""Admission and execution pipeline for relay requests.

`RelayPipeline.relay` takes a raw request body through every gate in order:

- shape the body into a `RelayRequest`
- per-sender rate limit
- idempotency mark (before any execution)
- target, caller, hash and deadline checks
- contract status probe and fee ceiling
- submission, confirmation wait and classification

Everything from the idempotency mark on runs in its own task that the caller
awaits through `asyncio.shield`, so a disconnecting client never cancels a
submission that is already under way. Guard store calls run in a worker
thread because the Redis store makes a blocking round trip.
"""

from __future__ import annotations

import asyncio
import logging

from eth_account import Account

from forward_relay.core.settings import Settings
from forward_relay.models import RelayRequest
from forward_relay.services.chain import ChainBackend, ChainClient, ChainError
from forward_relay.services.classifier import ErrorClassifier
from forward_relay.services.errors import ErrorKind, RelayError
from forward_relay.services.executor import Executor, SubmissionFailure
from forward_relay.services.fees import FeePolicyGuard
from forward_relay.services.outcomes import RelayOutcome
from forward_relay.services.probe import StatusProbe
from forward_relay.services.rate_limit import RateLimiter
from forward_relay.services.receipts import ReceiptState, ReceiptWaiter
from forward_relay.services.reconcile import PendingReconciler
from forward_relay.services.replay import IdempotencyGuard, get_replay_store
from forward_relay.services.validation import AuthorizationValidator, LocalGates

logger = logging.getLogger(__name__)


class RelayPipeline:
    """Sequence the gates and execution steps for one relay request."""

    def __init__(
        self,
        *,
        validator: AuthorizationValidator,
        limiter: RateLimiter,
        guard: IdempotencyGuard,
        gates: LocalGates,
        probe: StatusProbe,
        fees: FeePolicyGuard,
        executor: Executor,
        waiter: ReceiptWaiter,
        classifier: ErrorClassifier,
        reconciler: PendingReconciler | None = None,
    ) -> None:
        self.validator = validator
        self.limiter = limiter
        self.guard = guard
        self.gates = gates
        self.probe = probe
        self.fees = fees
        self.executor = executor
        self.waiter = waiter
        self.classifier = classifier
        self.reconciler = reconciler
        self._tasks: set[asyncio.Task[RelayOutcome]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def relay(self, body: bytes | str | dict) -> RelayOutcome:
        """Run ``body`` through the pipeline and return its terminal outcome."""
        try:
            request = self.validator.parse(body)
        except RelayError as err:
            logger.warning("Rejected malformed request: %s", err)
            return self.classifier.from_error(err)

        authorization = request.authorization
        if not self.limiter.admit(authorization.sender):
            logger.warning("Rate limit exceeded for %s", authorization.sender)
            return self.classifier.reject(ErrorKind.RATE_LIMITED, authorization.sender)

        task = asyncio.create_task(self._execute(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return await asyncio.shield(task)

    async def _execute(self, request: RelayRequest) -> RelayOutcome:
        key = request.authorization.idempotency_key
        if not await asyncio.to_thread(self.guard.try_mark_pending, key):
            logger.warning("Duplicate request %s", key)
            return self.classifier.reject(ErrorKind.DUPLICATE_REQUEST, key)

        try:
            self.gates.check(request)
            await self.probe.check(request.authorization)
            await self.fees.check()
        except RelayError as err:
            await asyncio.to_thread(self.guard.release, key)
            return self.classifier.from_error(err)
        except ChainError as err:
            await asyncio.to_thread(self.guard.release, key)
            logger.error("Precondition lookup failed for %s: %s", key, err)
            return self.classifier.from_exception(err)
        except Exception as err:  # nothing was submitted, so the mark is released
            await asyncio.to_thread(self.guard.release, key)
            logger.exception("Unexpected precondition failure for %s", key)
            return self.classifier.from_exception(err)

        try:
            submission = await self.executor.submit(request)
            if isinstance(submission, SubmissionFailure):
                return self.classifier.from_submission(submission)

            result = await self.waiter.wait(submission.tx_hash)
        except Exception as err:  # task boundary: every failure becomes an outcome
            logger.exception("Unexpected failure relaying %s", key)
            return self.classifier.from_exception(err)

        if self.reconciler is not None:
            if result.state is ReceiptState.TIMEOUT:
                self.reconciler.record_timeout(result.tx_hash)
            else:
                self.reconciler.record(
                    result.tx_hash,
                    result.state,
                    block_number=result.block_number,
                    gas_used=result.gas_used,
                )
        return self.classifier.from_wait(result)

    async def drain(self, timeout: float) -> int:
        """Wait up to ``timeout`` seconds for in-flight tasks; return how many remain."""
        if not self._tasks:
            return 0
        logger.info("Waiting for %d in-flight relay task(s)", len(self._tasks))
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d relay task(s) still running at shutdown", len(pending))
        return len(pending)


def build_pipeline(config: Settings, chain: ChainBackend | None = None) -> RelayPipeline:
    """Wire a `RelayPipeline` from settings.

    ``chain`` may be supplied to reuse or replace the JSON-RPC client.
    """
    if chain is None:
        chain = ChainClient(config.rpc_url, timeout=config.rpc_timeout_seconds)
    account = Account.from_key(config.relayer_private_key)
    guard = IdempotencyGuard(
        get_replay_store(config.redis_url), ttl_seconds=config.idempotency_ttl_seconds
    )
    return RelayPipeline(
        validator=AuthorizationValidator(),
        limiter=RateLimiter(
            window_seconds=config.rate_limit_window_seconds,
            max_requests=config.rate_limit_max_requests,
        ),
        guard=guard,
        gates=LocalGates(target_contract=config.target_contract, relayer_address=account.address),
        probe=StatusProbe(
            chain,
            target_contract=config.target_contract,
            hub_address=config.hub_address,
            check_caller_allowlist=config.check_caller_allowlist,
            check_hub_nonce=config.check_hub_nonce,
        ),
        fees=FeePolicyGuard(chain, max_gas_price_wei=config.max_gas_price_wei),
        executor=Executor(
            chain,
            account,
            hub_address=config.hub_address,
            chain_id=config.chain_id,
            buffer_percent=config.gas_limit_buffer_percent,
            default_gas_limit=config.default_gas_limit,
        ),
        waiter=ReceiptWaiter(
            chain,
            poll_interval=config.receipt_poll_interval_seconds,
            timeout=config.receipt_timeout_seconds,
        ),
        classifier=ErrorClassifier(verbose=config.debug),
        reconciler=PendingReconciler(chain, retention_seconds=config.reconcile_retention_seconds),
    )
