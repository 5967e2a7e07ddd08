"""
Shared utilities for Vestry.

Provides access to common functionality used across Gate implementations.
"""

from vestry.shared.gate import (
    GateLogger,
    ConfigLoader,
    build_health_status,
)

__all__ = [
    "GateLogger",
    "ConfigLoader",
    "build_health_status",
]
