"""
ConnectorGate - elFinder-compatible file manager backend for Vestry.

Provides:
- Command dispatch (open, mkdir, mkfile, rename, upload, paste, rm, ...)
- Opaque, versioned file identifiers
- Rule-based read/write/remove permissions
- Sandbox revalidation of every decoded path

Usage:
    from vestry import ConnectorGate

    # Initialize from VESTRY_* environment variables (call on startup)
    ConnectorGate.initialize()

    # Or from explicit options
    ConnectorGate.initialize(root="/srv/files", url="/files")

    # Handle a request
    headers, response = ConnectorGate.run({"cmd": "open", "init": True, "tree": True})
"""

import os
from typing import Optional, List, Dict, Any, Mapping, Tuple

from vestry.shared.gate import GateLogger, build_health_status

from .codec import PathCodec, IDENTIFIER_VERSION
from .config import (
    DEFAULT_MESSAGES,
    ConnectorConfig,
    PermissionRule,
    PermissionsFile,
    build_config,
)
from .connector import Connector
from .errors import (
    ConnectorError,
    ConfigurationError,
    DecodeError,
    InvalidCommand,
    AccessDenied,
    AlreadyExists,
    DoesNotExist,
    CommandNotImplemented,
    OperationFailed,
)
from .handlers import ImageResize, ImageSize, MimeType
from .models import (
    Capability,
    CapabilitySet,
    Command,
    ConnectorRequest,
    ConnectorResponse,
    Dimensions,
    UploadedFile,
)
from .security import PathSecurityError

# Logger for this gate
_log = GateLogger.get("ConnectorGate")

# Module-level state
_connector: Optional[Connector] = None
_initialized: bool = False


class ConnectorGate:
    """
    Main interface for Vestry's file manager connector.

    All methods are class methods for easy access throughout the application.
    """

    @classmethod
    def initialize(cls, config: Optional[ConnectorConfig] = None, **options: Any) -> bool:
        """
        Initialize the connector gate.

        Args:
            config: Prebuilt configuration
            **options: Connector options; without config or options the
                configuration is read from the environment

        Returns:
            True if initialization successful

        Raises:
            ConfigurationError: If the configuration is missing or invalid
        """
        global _connector, _initialized

        try:
            if config is None:
                if options:
                    config = build_config(**options)
                else:
                    from vestry.Config import load_connector_config
                    config = load_connector_config()

            _connector = Connector(config)
        except ConfigurationError as e:
            _log.error(f"Initialization failed: {e}")
            _connector = None
            _initialized = False
            raise

        _initialized = True
        _log.info(f"Initialized successfully (root={config.root})")
        return True

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the gate is initialized."""
        return _initialized

    @classmethod
    def reset(cls) -> None:
        """Drop the configured connector."""
        global _connector, _initialized
        _connector = None
        _initialized = False

    @classmethod
    def get_connector(cls) -> Connector:
        """Get the configured connector."""
        if _connector is None:
            raise RuntimeError("ConnectorGate is not initialized. Call ConnectorGate.initialize() first.")
        return _connector

    @classmethod
    def run(cls, params: Mapping[str, Any]) -> Tuple[Dict[str, str], Dict[str, Any]]:
        """
        Execute one connector request.

        Args:
            params: Request fields

        Returns:
            Tuple of (transport headers, response payload)
        """
        return cls.get_connector().run(params)

    # ==================== Health Checks ====================

    @classmethod
    def is_healthy(cls) -> bool:
        """Check if the gate is operational."""
        if not _initialized or _connector is None:
            return False
        return all(cls._checks().values())

    @classmethod
    def _checks(cls) -> Dict[str, bool]:
        root = _connector.root
        return {
            "root_exists": os.path.isdir(root),
            "root_readable": os.access(root, os.R_OK),
        }

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Get detailed health information."""
        checks = {}
        details = {}

        if _initialized and _connector is not None:
            config = _connector.config
            checks = cls._checks()
            details["root"] = config.root
            details["url"] = config.url
            details["disabled_commands"] = list(config.disabled_commands)
            details["images_enabled"] = config.images_enabled
            details["rule_count"] = len(config.perms)

        return build_health_status(
            gate_name="ConnectorGate",
            initialized=_initialized,
            dependencies=cls.get_dependencies(),
            checks=checks,
            details=details,
        )

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies."""
        return ["filesystem", "pillow"]


# ==================== Module-level convenience functions ====================


def initialize(config: Optional[ConnectorConfig] = None, **options: Any) -> bool:
    """Initialize the connector gate."""
    return ConnectorGate.initialize(config, **options)


def is_initialized() -> bool:
    """Check if gate is initialized."""
    return ConnectorGate.is_initialized()


def reset() -> None:
    """Drop the configured connector."""
    ConnectorGate.reset()


def get_connector() -> Connector:
    """Get the configured connector."""
    return ConnectorGate.get_connector()


def run(params: Mapping[str, Any]) -> Tuple[Dict[str, str], Dict[str, Any]]:
    """Execute one connector request."""
    return ConnectorGate.run(params)


def is_healthy() -> bool:
    """Check if gate is operational."""
    return ConnectorGate.is_healthy()


def get_health_status() -> Dict[str, Any]:
    """Get detailed health information."""
    return ConnectorGate.get_health_status()


def get_dependencies() -> List[str]:
    """List external dependencies."""
    return ConnectorGate.get_dependencies()


__all__ = [
    # Class
    "ConnectorGate",
    "Connector",
    # Lifecycle
    "initialize",
    "is_initialized",
    "reset",
    "get_connector",
    "run",
    # Health
    "is_healthy",
    "get_health_status",
    "get_dependencies",
    # Configuration
    "ConnectorConfig",
    "PermissionRule",
    "PermissionsFile",
    "DEFAULT_MESSAGES",
    "build_config",
    # Identifiers
    "PathCodec",
    "IDENTIFIER_VERSION",
    # Models
    "Capability",
    "CapabilitySet",
    "Command",
    "ConnectorRequest",
    "ConnectorResponse",
    "Dimensions",
    "UploadedFile",
    # Handlers
    "MimeType",
    "ImageSize",
    "ImageResize",
    # Errors
    "ConnectorError",
    "ConfigurationError",
    "DecodeError",
    "InvalidCommand",
    "AccessDenied",
    "AlreadyExists",
    "DoesNotExist",
    "CommandNotImplemented",
    "OperationFailed",
    "PathSecurityError",
]
