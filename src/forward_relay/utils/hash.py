# src/forward_relay/utils/hash.py
"""Hex and Keccak-256 helpers shared by validation and execution."""

from __future__ import annotations

import eth_utils
from eth_utils import keccak

HASH_BYTES = 32


def decode_hex(value: str) -> bytes:
    """Decode a hex string with optional ``0x`` prefix.

    Raises:
        ValueError: If the string is not valid, even-length hex.
    """
    try:
        return eth_utils.decode_hex(value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"invalid hex string: {err}") from err


def keccak_digest(data: bytes) -> bytes:
    """Return the Keccak-256 digest of the supplied data."""
    return keccak(primitive=data)
