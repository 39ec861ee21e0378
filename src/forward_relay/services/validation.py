"""Authorization shaping and the local validation gates.

`AuthorizationValidator` turns a raw request body into a typed
`RelayRequest` without touching the network. `LocalGates` holds the cheap,
deterministic checks (target, caller, data hash, deadline) that run after
admission and before anything costs an RPC round trip.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from forward_relay.models import Authorization, EncodedCall, RelayRequest
from forward_relay.schemas.relay import EMPTY_FIELD_ERROR, RelayPayload
from forward_relay.services.errors import (
    ErrorKind,
    MalformedReason,
    MalformedRequestError,
    RelayError,
)
from forward_relay.utils.hash import keccak_digest

logger = logging.getLogger(__name__)

_MISSING_ERROR_TYPES = frozenset({"missing", EMPTY_FIELD_ERROR})


def _describe_errors(errors: list[dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location or 'body'}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)


class AuthorizationValidator:
    """Shape and type-check relay request bodies."""

    def parse(self, body: bytes | str | dict[str, Any]) -> RelayRequest:
        """Return a typed relay request or raise `MalformedRequestError`.

        Args:
            body: Raw JSON bytes/text, or an already decoded mapping.

        Raises:
            MalformedRequestError: ``MissingField`` when a required field is
                absent or empty, ``MalformedBody`` for anything else.
        """
        if isinstance(body, (bytes, str)):
            try:
                body = json.loads(body or b"null")
            except ValueError as err:  # JSONDecodeError, UnicodeDecodeError, int digit limit
                raise MalformedRequestError(MalformedReason.MALFORMED_BODY, str(err)) from err

        if not isinstance(body, dict):
            raise MalformedRequestError(
                MalformedReason.MALFORMED_BODY, "request body must be a JSON object"
            )

        try:
            payload = RelayPayload.model_validate(body)
        except ValidationError as err:
            errors = err.errors()
            reason = (
                MalformedReason.MISSING_FIELD
                if any(item.get("type") in _MISSING_ERROR_TYPES for item in errors)
                else MalformedReason.MALFORMED_BODY
            )
            raise MalformedRequestError(reason, _describe_errors(errors)) from err

        forward = payload.forward
        authorization = Authorization(
            sender=forward.from_address,
            to=forward.to,
            value=forward.value,
            space=forward.space,
            nonce=forward.nonce,
            deadline=forward.deadline,
            data_hash=forward.data_hash,
            caller=forward.caller,
        )
        return RelayRequest(
            authorization=authorization,
            encoded_call=EncodedCall(call_data=payload.call_data, signature=payload.signature),
        )


class LocalGates:
    """Deterministic gates evaluated in order after admission.

    Each check raises `RelayError` with the matching kind on failure.
    """

    def __init__(
        self,
        *,
        target_contract: str,
        relayer_address: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._target = target_contract.lower()
        self._relayer = relayer_address.lower()
        self._clock = clock

    def check(self, request: RelayRequest) -> None:
        """Run target, caller, hash and deadline checks in that order."""
        self.check_target(request.authorization)
        self.check_caller(request.authorization)
        self.check_data_hash(request)
        self.check_deadline(request.authorization)

    def check_target(self, authorization: Authorization) -> None:
        if authorization.to.lower() != self._target:
            logger.warning("Invalid target contract %s", authorization.to)
            raise RelayError(ErrorKind.INVALID_TARGET, f"target {authorization.to}")

    def check_caller(self, authorization: Authorization) -> None:
        if authorization.caller.lower() != self._relayer:
            logger.warning(
                "Caller mismatch: expected %s, got %s", self._relayer, authorization.caller
            )
            raise RelayError(ErrorKind.INVALID_CALLER, f"caller {authorization.caller}")

    def check_data_hash(self, request: RelayRequest) -> None:
        computed = keccak_digest(request.encoded_call.call_data)
        if computed != request.authorization.data_hash:
            logger.warning(
                "DataHash mismatch: computed 0x%s, received 0x%s",
                computed.hex(),
                request.authorization.data_hash.hex(),
            )
            raise RelayError(ErrorKind.HASH_MISMATCH, f"computed 0x{computed.hex()}")

    def check_deadline(self, authorization: Authorization) -> None:
        now = int(self._clock())
        if now > authorization.deadline:
            logger.warning("Deadline %d expired (now %d)", authorization.deadline, now)
            raise RelayError(ErrorKind.EXPIRED, f"deadline {authorization.deadline} < {now}")
