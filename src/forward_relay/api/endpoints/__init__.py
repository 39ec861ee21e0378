# src/forward_relay/api/endpoints/__init__.py
"""Route modules."""

from .relay import router as relay_router
from .system import router as system_router

__all__ = ["relay_router", "system_router"]
