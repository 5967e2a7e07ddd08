"""
Vestry Configuration Manager.

Environment-driven configuration with:
- Schema-driven validation
- .env file loading
- Optional JSON permission rules file
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv

from vestry.shared.gate import ConfigLoader, GateLogger

_log = GateLogger.get("Config")

from vestry.Config.schema import (
    CONFIG_SCHEMA,
    ConfigField,
    ConfigType,
    ConfigCategory,
    get_schema_by_key,
    get_required_fields,
    schema_to_dict,
)
from vestry.ConnectorGate.config import ConnectorConfig, PermissionsFile, build_config
from vestry.ConnectorGate.errors import ConfigurationError


# Config file paths
PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = PROJECT_ROOT / ".env"


class ConfigManager:
    """
    Manages Vestry configuration.

    Priority order:
    1. Environment variables (including those loaded from .env)
    2. Schema defaults
    """

    def __init__(self, env_file: Optional[Union[str, Path]] = None):
        self._env_file = Path(env_file) if env_file else ENV_FILE
        self._cache: Dict[str, Any] = {}
        self._loaded = False
        self._load()

    def _load(self):
        """Load configuration from all sources."""
        # Load .env file; variables already set in the environment win
        load_dotenv(self._env_file)

        for field in CONFIG_SCHEMA:
            value = os.environ.get(field.env_var)

            if value is None:
                value = field.default

            self._cache[field.key] = self._convert_type(value, field.config_type)

        self._loaded = True

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        """Convert value to appropriate type."""
        if value is None:
            return None

        try:
            if config_type == ConfigType.BOOLEAN:
                if isinstance(value, bool):
                    return value
                return str(value).lower() in ("true", "1", "yes", "on")
            elif config_type == ConfigType.LIST:
                if isinstance(value, (list, tuple)):
                    return list(value)
                return [v.strip() for v in str(value).split(",") if v.strip()]
            elif config_type == ConfigType.SIZE:
                if isinstance(value, int):
                    return value
                value = str(value).strip()
                return int(value) if value.isdigit() else value
            else:
                return str(value) if value else None
        except (ValueError, TypeError):
            return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if not self._loaded:
            self._load()
        value = self._cache.get(key)
        return default if value is None else value

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return {field.key: self._cache.get(field.key) for field in CONFIG_SCHEMA}

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate configuration.

        Returns:
            (is_valid, list of error messages)
        """
        errors = []

        for field in get_required_fields():
            value = self._cache.get(field.key)
            if value is None or value == "":
                errors.append(f"Required config missing: {field.key}")

        perms_file = self._cache.get("VESTRY_PERMS_FILE")
        if perms_file and not os.path.isfile(perms_file):
            errors.append(f"Permissions file not found: {perms_file}")

        return len(errors) == 0, errors

    def connector_options(self) -> Dict[str, Any]:
        """
        Translate the loaded values into connector options.

        Returns:
            Keyword arguments for build_config()

        Raises:
            ConfigurationError: If a required value is missing or the
                permissions file cannot be used
        """
        is_valid, errors = self.validate()
        if not is_valid:
            raise ConfigurationError("; ".join(errors))

        options: Dict[str, Any] = {}
        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)
            if field.option and value is not None:
                options[field.option] = value

        if "disabled_commands" in options:
            options["disabled_commands"] = tuple(options["disabled_commands"])

        perms_file = self._cache.get("VESTRY_PERMS_FILE")
        if perms_file:
            options.update(self._load_permissions(perms_file))

        return options

    def _load_permissions(self, path: str) -> Dict[str, Any]:
        try:
            permissions = ConfigLoader.load(path, PermissionsFile, create_default=False)
        except ValueError as e:
            raise ConfigurationError(f"Invalid permissions file {path}: {e}") from e

        if permissions is None:
            raise ConfigurationError(f"Unreadable permissions file: {path}")

        _log.info(f"Loaded {len(permissions.perms)} permission rules from {path}")
        return {"default_perms": permissions.default_perms, "perms": permissions.perms}


# Global instance
_manager: Optional[ConfigManager] = None


def get_manager() -> ConfigManager:
    """Get or create the global ConfigManager."""
    global _manager
    if _manager is None:
        _manager = ConfigManager()
    return _manager


def reload(env_file: Optional[Union[str, Path]] = None):
    """Reload configuration from the environment."""
    global _manager
    _manager = ConfigManager(env_file)


# Convenience functions
def get(key: str, default: Any = None) -> Any:
    """Get a config value."""
    return get_manager().get(key, default)


def get_all() -> Dict:
    """Get all config values."""
    return get_manager().get_all()


def validate() -> Tuple[bool, List[str]]:
    """Validate configuration."""
    return get_manager().validate()


def get_schema() -> Dict:
    """Get schema as dict for documentation."""
    return schema_to_dict()


def load_connector_config(
    env_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> ConnectorConfig:
    """
    Build the connector configuration from the environment.

    Args:
        env_file: .env file to load (default: project root .env)
        **overrides: Options taking precedence over the environment

    Returns:
        Frozen ConnectorConfig

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """
    manager = ConfigManager(env_file)
    options = manager.connector_options()
    options.update(overrides)
    return build_config(**options)


__all__ = [
    "ConfigManager",
    "ConfigField",
    "ConfigType",
    "ConfigCategory",
    "CONFIG_SCHEMA",
    "get_manager",
    "get_schema_by_key",
    "reload",
    "get",
    "get_all",
    "validate",
    "get_schema",
    "load_connector_config",
]
