# src/forward_relay/api/__init__.py
"""HTTP surface of the relay."""

from .endpoints import relay_router, system_router

__all__ = ["relay_router", "system_router"]
