# src/forward_relay/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .relay import (
    ForwardPayload,
    HealthResponse,
    RelayErrorResponse,
    RelayPayload,
    RelayStatusResponse,
    RelaySuccessResponse,
)

__all__ = [
    "ForwardPayload", "RelayPayload",
    "RelaySuccessResponse", "RelayErrorResponse",
    "RelayStatusResponse", "HealthResponse",
]
