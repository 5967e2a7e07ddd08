"""
Shared Gate utilities for Vestry.

Provides consolidated patterns for Gate implementations:
- GateLogger: Unified logging with Python's logging module
- build_health_status: Standardized health report
- ConfigLoader: Unified JSON config loading
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
)


# =============================================================================
# GateLogger - Unified logging for all Gates
# =============================================================================


class GateLogger:
    """
    Unified logging for all Gates.

    Each gate gets its own namespaced logger under the "vestry" root.
    """

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def _ensure_configured(cls):
        """Ensure basic logging is configured."""
        if cls._configured:
            return

        # Configure root vestry logger if not already configured
        root_logger = logging.getLogger("vestry")
        if not root_logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "[%(name)s] %(levelname)s: %(message)s"
            )
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
            root_logger.setLevel(logging.INFO)

        cls._configured = True

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """
        Get a logger for a specific gate.

        Args:
            gate_name: Name of the gate (e.g., "ConnectorGate", "Config")

        Returns:
            Logger instance for the gate
        """
        cls._ensure_configured()

        logger_name = f"vestry.{gate_name}"
        if logger_name not in cls._loggers:
            cls._loggers[logger_name] = logging.getLogger(logger_name)

        return cls._loggers[logger_name]


# =============================================================================
# Health reporting
# =============================================================================


def build_health_status(
    gate_name: str,
    initialized: bool,
    dependencies: List[str],
    checks: Dict[str, bool],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a standardized health status dict.

    Args:
        gate_name: Name of the gate
        initialized: Whether the gate is initialized
        dependencies: List of dependency names
        checks: Dict of check name -> passed
        details: Additional details

    Returns:
        Standardized health status dict
    """
    all_checks_passed = all(checks.values()) if checks else True

    return {
        "gate": gate_name,
        "healthy": initialized and all_checks_passed,
        "initialized": initialized,
        "dependencies": dependencies,
        "checks": checks,
        "details": details or {},
    }


# =============================================================================
# ConfigLoader - Unified JSON config loading
# =============================================================================


ConfigT = TypeVar("ConfigT")


class ConfigLoader:
    """Unified configuration file loading."""

    @staticmethod
    def load_json(path: Union[str, Path]) -> Optional[Dict[str, Any]]:
        """
        Load a JSON document.

        Args:
            path: Path to the JSON file

        Returns:
            Parsed dict, or None if the file is missing or unreadable
        """
        path = Path(path)

        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger = GateLogger.get("ConfigLoader")
            logger.error(f"Failed to load config from {path}: {e}")
            return None

        if not isinstance(data, dict):
            GateLogger.get("ConfigLoader").error(f"Config in {path} is not an object")
            return None
        return data

    @staticmethod
    def load(
        path: Union[str, Path],
        model_class: Type[ConfigT],
        create_default: bool = True,
    ) -> Optional[ConfigT]:
        """
        Load a JSON config file into a model class.

        Args:
            path: Path to the config file
            model_class: pydantic model class (or any class taking kwargs)
            create_default: If True and file doesn't exist, return model_class()

        Returns:
            Instance of model_class or None if file doesn't exist
        """
        data = ConfigLoader.load_json(path)
        if data is None:
            return model_class() if create_default else None

        if hasattr(model_class, "model_validate"):
            return model_class.model_validate(data)
        return model_class(**data)
