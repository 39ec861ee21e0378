# src/forward_relay/models/__init__.py
"""Domain records used by the relay pipeline."""

from .forward import FORWARD_TUPLE_TYPE, Authorization, EncodedCall, RelayRequest

__all__ = ["FORWARD_TUPLE_TYPE", "Authorization", "EncodedCall", "RelayRequest"]
