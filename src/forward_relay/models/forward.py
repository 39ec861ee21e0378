# src/forward_relay/models/forward.py
"""Typed records for signed Forward authorizations."""

from __future__ import annotations

from dataclasses import dataclass

# ABI type of the hub's Forward struct; field order is part of the signed message.
FORWARD_TUPLE_TYPE = "(address,address,uint256,uint32,uint256,uint256,bytes32,address)"


@dataclass(frozen=True)
class Authorization:
    """A signed Forward message granting one call to one relay identity.

    Addresses are stored checksummed. `(sender, space, nonce)` names the
    logical authorization slot that the hub enforces uniqueness on.
    """

    sender: str
    to: str
    value: int
    space: int
    nonce: int
    deadline: int
    data_hash: bytes
    caller: str

    def as_tuple(self) -> tuple[str, str, int, int, int, int, bytes, str]:
        """Return the Forward struct in the order the hub expects."""
        return (
            self.sender,
            self.to,
            self.value,
            self.space,
            self.nonce,
            self.deadline,
            self.data_hash,
            self.caller,
        )

    @property
    def idempotency_key(self) -> str:
        """Key of the relay-side processed-request record."""
        return f"{self.sender}-{self.nonce}"


@dataclass(frozen=True)
class EncodedCall:
    """Opaque call bytes for the target plus the user's signature bundle."""

    call_data: bytes
    signature: bytes


@dataclass(frozen=True)
class RelayRequest:
    """A shaped relay submission ready for the gate chain."""

    authorization: Authorization
    encoded_call: EncodedCall
