"""Read-only precondition checks against the target and hub contracts."""

from __future__ import annotations

import logging
from typing import Final

from forward_relay.models import Authorization
from forward_relay.services.chain import ChainBackend, decode_bool, encode_call
from forward_relay.services.errors import ErrorKind, RelayError

logger = logging.getLogger(__name__)

COMPLETED_SIG: Final[str] = "minted(address)"
CALLER_ALLOWED_SIG: Final[str] = "isCallerAllowed(address)"
NONCE_USED_SIG: Final[str] = "isNonceUsed(address,uint32,uint256)"


class StatusProbe:
    """Query contract state before spending real execution cost.

    The target's one-shot flag (``minted(address)``) is always consulted.
    The hub's caller allowlist and nonce bitmap are consulted when enabled.
    """

    def __init__(
        self,
        chain: ChainBackend,
        *,
        target_contract: str,
        hub_address: str,
        check_caller_allowlist: bool = True,
        check_hub_nonce: bool = True,
    ) -> None:
        self._chain = chain
        self._target = target_contract
        self._hub = hub_address
        self._check_caller_allowlist = check_caller_allowlist
        self._check_hub_nonce = check_hub_nonce

    async def has_completed(self, sender: str) -> bool:
        """Return True if ``sender`` already satisfied the target's one-shot action."""
        data = encode_call(COMPLETED_SIG, ["address"], [sender])
        return decode_bool(await self._chain.call(self._target, data))

    async def is_caller_allowed(self, caller: str) -> bool:
        data = encode_call(CALLER_ALLOWED_SIG, ["address"], [caller])
        return decode_bool(await self._chain.call(self._hub, data))

    async def is_nonce_used(self, authorization: Authorization) -> bool:
        data = encode_call(
            NONCE_USED_SIG,
            ["address", "uint32", "uint256"],
            [authorization.sender, authorization.space, authorization.nonce],
        )
        return decode_bool(await self._chain.call(self._hub, data))

    async def check(self, authorization: Authorization) -> None:
        """Raise `RelayError` if a precondition already rules the request out.

        Raises:
            RelayError: ``AlreadyCompleted``, ``InvalidCaller`` or
                ``DuplicateRequest``.
            ChainError: If the node cannot be queried.
        """
        if await self.has_completed(authorization.sender):
            logger.warning("Sender %s already completed the action", authorization.sender)
            raise RelayError(ErrorKind.ALREADY_COMPLETED, f"sender {authorization.sender}")

        if self._check_caller_allowlist and not await self.is_caller_allowed(authorization.caller):
            logger.warning("Hub does not allow caller %s", authorization.caller)
            raise RelayError(ErrorKind.INVALID_CALLER, f"caller {authorization.caller} not allowed")

        if self._check_hub_nonce and await self.is_nonce_used(authorization):
            logger.warning(
                "Hub nonce already used: %s space=%d nonce=%d",
                authorization.sender,
                authorization.space,
                authorization.nonce,
            )
            raise RelayError(ErrorKind.DUPLICATE_REQUEST, "nonce already used on-chain")
