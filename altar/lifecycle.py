from __future__ import annotations

from vestry import ConnectorGate
from vestry.ConnectorGate.errors import ConfigurationError
from vestry.shared.gate import GateLogger

# Lifecycle logger
_log = GateLogger.get("Lifecycle")


def startup():
    """Initialize subsystems on server startup."""
    if ConnectorGate.is_initialized():
        return

    try:
        ConnectorGate.initialize()
    except ConfigurationError as e:
        # Serve health and 503s rather than refusing to boot
        _log.error(f"ConnectorGate disabled: {e}")


def shutdown():
    """Cleanup on server shutdown."""
    ConnectorGate.reset()
    _log.info("ConnectorGate shut down")
