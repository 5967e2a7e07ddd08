"""
Vestry - a sandboxed file manager backend.

Gates:
- ConnectorGate: elFinder-compatible command connector
- Config: environment-driven configuration
"""

from vestry import ConnectorGate
from vestry import Config

__all__ = ["ConnectorGate", "Config"]
