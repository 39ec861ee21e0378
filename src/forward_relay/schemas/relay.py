# src/forward_relay/schemas/relay.py
"""Relay request and response Pydantic schemas."""

from __future__ import annotations

from typing import Any

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from forward_relay.utils.hash import HASH_BYTES, decode_hex

UINT32_MAX = 2**32 - 1
UINT256_MAX = 2**256 - 1

# Error type used for present-but-empty fields; reported as a missing field.
EMPTY_FIELD_ERROR = "empty_field"


def _parse_uint(value: Any, upper: int) -> int:
    """Parse a JSON integer or a decimal/``0x`` hex string into a bounded uint."""
    if isinstance(value, bool):
        raise ValueError("expected an unsigned integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text[:2] in ("0x", "0X"):
                parsed = int(text[2:], 16)
            elif text.isdigit():
                parsed = int(text, 10)
            else:
                raise ValueError
        except ValueError as err:
            raise ValueError(f"not an unsigned integer: {value!r}") from err
    else:
        raise ValueError("expected an unsigned integer")
    if parsed < 0 or parsed > upper:
        raise ValueError(f"value {parsed} out of range")
    return parsed


def _parse_address(value: Any) -> str:
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"not a valid address: {value!r}")
    return to_checksum_address(value)


def _parse_bytes(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError("expected a hex string")
    if value.strip() in ("", "0x", "0X"):
        raise PydanticCustomError(EMPTY_FIELD_ERROR, "Field must not be empty")
    return decode_hex(value.strip())


class ForwardPayload(BaseModel):
    """Schema for the signed Forward message."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_address: str = Field(..., alias="from", description="Signer of the authorization")
    to: str = Field(..., description="Target contract")
    value: int = Field(..., description="Native value forwarded to the target, in wei")
    space: int = Field(..., description="Nonce space (uint32)")
    nonce: int = Field(..., description="Nonce within the space (uint256)")
    deadline: int = Field(..., description="Expiry as unix seconds")
    data_hash: bytes = Field(..., alias="dataHash", description="keccak256 of callData")
    caller: str = Field(..., description="Relay identity allowed to submit")

    @field_validator("from_address", "to", "caller", mode="before")
    @classmethod
    def _validate_address(cls, value: Any) -> str:
        return _parse_address(value)

    @field_validator("value", "nonce", "deadline", mode="before")
    @classmethod
    def _validate_uint256(cls, value: Any) -> int:
        return _parse_uint(value, UINT256_MAX)

    @field_validator("space", mode="before")
    @classmethod
    def _validate_uint32(cls, value: Any) -> int:
        return _parse_uint(value, UINT32_MAX)

    @field_validator("data_hash", mode="before")
    @classmethod
    def _validate_hash(cls, value: Any) -> bytes:
        digest = _parse_bytes(value)
        if len(digest) != HASH_BYTES:
            raise ValueError(f"expected {HASH_BYTES} bytes, got {len(digest)}")
        return digest


class RelayPayload(BaseModel):
    """Schema for the body of ``POST /relay``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    forward: ForwardPayload
    signature: bytes = Field(..., description="Signature over the Forward message")
    call_data: bytes = Field(..., alias="callData", description="Encoded target call")

    @field_validator("signature", "call_data", mode="before")
    @classmethod
    def _validate_hex(cls, value: Any) -> bytes:
        return _parse_bytes(value)


class RelaySuccessResponse(BaseModel):
    """Schema returned after a confirmed relay."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    tx_hash: str = Field(..., serialization_alias="txHash")
    transaction_hash: str = Field(..., serialization_alias="transactionHash")
    block_number: int = Field(..., serialization_alias="blockNumber")
    gas_used: str = Field(..., serialization_alias="gasUsed")


class RelayErrorResponse(BaseModel):
    """Schema returned for any rejected or failed relay."""

    success: bool = False
    error: str
    message: str
    details: str | None = None
    tx_hash: str | None = Field(default=None, serialization_alias="txHash")


class HealthResponse(BaseModel):
    """Schema for ``GET /health``."""

    status: str = "ok"
    relayer: str
    timestamp: int


class RelayStatusResponse(BaseModel):
    """Reconciled status of a previously submitted transaction."""

    tx_hash: str = Field(..., serialization_alias="txHash")
    state: str
    block_number: int | None = Field(default=None, serialization_alias="blockNumber")
    gas_used: str | None = Field(default=None, serialization_alias="gasUsed")
    updated_at: int = Field(..., serialization_alias="updatedAt")
