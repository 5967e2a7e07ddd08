"""
Configuration schema for Vestry.

Defines every environment-configurable option with metadata for
validation and documentation.
"""

from enum import Enum
from typing import Optional, List, Any
from dataclasses import dataclass


class ConfigType(Enum):
    """Configuration value types."""
    STRING = "string"
    BOOLEAN = "boolean"
    PATH = "path"          # File system path
    URL = "url"
    SIZE = "size"          # Byte count or "50M" style size
    LIST = "list"          # Comma-separated values


class ConfigCategory(Enum):
    """Configuration categories for grouping."""
    PATHS = "paths"
    SERVER = "server"
    FEATURES = "features"


@dataclass
class ConfigField:
    """Definition of a configuration field."""
    key: str
    description: str
    config_type: ConfigType
    category: ConfigCategory
    required: bool = False
    default: Any = None
    env_var: str = None          # Override env var name (defaults to key)
    option: str = None           # Connector option the value is passed as

    def __post_init__(self):
        if self.env_var is None:
            self.env_var = self.key


# ==================== Schema Definition ====================

CONFIG_SCHEMA: List[ConfigField] = [
    # === Paths ===
    ConfigField(
        key="VESTRY_ROOT",
        description="Directory exposed to the file manager",
        config_type=ConfigType.PATH,
        category=ConfigCategory.PATHS,
        required=True,
        option="root",
    ),
    ConfigField(
        key="VESTRY_PERMS_FILE",
        description="JSON file with default_perms and per-path permission rules",
        config_type=ConfigType.PATH,
        category=ConfigCategory.PATHS,
        required=False,
    ),

    # === Server ===
    ConfigField(
        key="VESTRY_URL",
        description="Public URL the root directory is served under",
        config_type=ConfigType.URL,
        category=ConfigCategory.SERVER,
        required=True,
        option="url",
    ),
    ConfigField(
        key="VESTRY_UPLOAD_MAX_SIZE",
        description="Largest accepted upload (e.g. 50M, 512K or a byte count)",
        config_type=ConfigType.SIZE,
        category=ConfigCategory.SERVER,
        default="50M",
        option="upload_max_size",
    ),

    # === Features ===
    ConfigField(
        key="VESTRY_HOME",
        description="Label shown for the root directory",
        config_type=ConfigType.STRING,
        category=ConfigCategory.FEATURES,
        default="Home",
        option="home",
    ),
    ConfigField(
        key="VESTRY_DISABLED_COMMANDS",
        description="Comma-separated commands the connector refuses",
        config_type=ConfigType.LIST,
        category=ConfigCategory.FEATURES,
        default=[],
        option="disabled_commands",
    ),
    ConfigField(
        key="VESTRY_SHOW_DOT_FILES",
        description="List entries whose name starts with a dot",
        config_type=ConfigType.BOOLEAN,
        category=ConfigCategory.FEATURES,
        default=True,
        option="show_dot_files",
    ),
]


def get_schema_by_key(key: str) -> Optional[ConfigField]:
    """Get schema field by key."""
    for field in CONFIG_SCHEMA:
        if field.key == key:
            return field
    return None


def get_schema_by_category(category: ConfigCategory) -> List[ConfigField]:
    """Get all fields in a category."""
    return [f for f in CONFIG_SCHEMA if f.category == category]


def get_required_fields() -> List[ConfigField]:
    """Get all required fields."""
    return [f for f in CONFIG_SCHEMA if f.required]


def schema_to_dict() -> dict:
    """Convert schema to dict for documentation."""
    result = {}
    for cat in ConfigCategory:
        fields = get_schema_by_category(cat)
        result[cat.value] = [
            {
                "key": f.key,
                "description": f.description,
                "type": f.config_type.value,
                "required": f.required,
                "default": f.default,
            }
            for f in fields
        ]
    return result
