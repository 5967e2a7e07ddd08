"""
ConnectorGate configuration.

The configuration is an immutable value built once by build_config() and
shared by every request.
"""

import os
import re
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .handlers import (
    ImageResize,
    ImageResizer,
    ImageSize,
    ImageSizeResolver,
    MimeResolver,
    MimeType,
)
from .models import Capability, CapabilitySet, Command
from .security import normalize_path, parse_size


DEFAULT_MESSAGES: Dict[str, str] = {
    "access_denied": "Access Denied",
    "invalid_command": "Invalid command '{cmd}'",
    "invalid_identifier": "Invalid file identifier",
    "invalid_request": "Invalid request",
    "not_implemented": "Command '{cmd}' not yet implemented",
    "operation_failed": "Command '{cmd}' failed",
    "directory_missing": "Directory does not exist",
    "mkdir_failed": "Unable to create folder",
    "mkfile_failed": "Unable to create file",
    "rename_exists": "Unable to rename {ftype}. '{name}' already exists",
    "rename_failed": "Unable to rename {ftype}",
    "upload_failed": "Some files were unable to be uploaded",
    "upload_too_large": "exceeds the upload limit of {limit}",
    "upload_invalid_name": "has an invalid name",
    "upload_item_failed": "could not be saved",
    "paste_failed": "Some files were unable to be copied",
    "paste_exists": "already exists in '{directory}'",
    "paste_item_failed": "could not be copied",
    "rm_empty": "No files were selected for removal",
    "duplicate_failed": "Unable to duplicate {ftype}",
    "read_failed": "Unable to read file",
    "edit_failed": "Unable to save file",
    "resize_missing": "Unable to resize file. It does not exist",
    "resize_failed": "Unable to resize file",
}


def _original_filename(upload: Any) -> str:
    return upload.filename


class PermissionRule(BaseModel):
    """
    A per-path permission override.

    ``pattern`` is compared to the root-relative path ("." for the root):
    by equality, or with re.search when ``regex`` is set. Only overrides
    explicitly set to False have any effect.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pattern: str
    regex: bool = False
    flags: int = 0
    read: Optional[bool] = None
    write: Optional[bool] = None
    remove: Optional[bool] = Field(default=None, alias="rm")

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        # Accept the compact (pattern, {"write": False}) form
        if isinstance(data, (tuple, list)) and len(data) == 2:
            pattern, overrides = data
            data = dict(overrides or {})
            data["pattern"] = pattern

        if isinstance(data, dict) and isinstance(data.get("pattern"), re.Pattern):
            compiled = data["pattern"]
            data = {**data, "pattern": compiled.pattern, "regex": True, "flags": compiled.flags}
        return data

    @model_validator(mode="after")
    def _check_pattern(self) -> "PermissionRule":
        if self.regex:
            try:
                re.compile(self.pattern, self.flags)
            except re.error as e:
                raise ValueError(f"Invalid rule pattern {self.pattern!r}: {e}") from e
        return self

    def matches(self, relative_path: str) -> bool:
        if self.regex:
            return re.search(self.pattern, relative_path, self.flags) is not None
        return relative_path == self.pattern

    def denies(self, capability: Capability) -> bool:
        return getattr(self, Capability(capability).value) is False


class PermissionsFile(BaseModel):
    """Layout of the JSON permissions file."""
    default_perms: CapabilitySet = Field(default_factory=CapabilitySet)
    perms: Tuple[PermissionRule, ...] = ()


class ConnectorConfig(BaseModel):
    """Immutable connector configuration."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    root: str = Field(description="Sandbox root directory")
    url: str = Field(description="Public URL base the root is served under")
    home: str = Field(default="Home", description="Display label of the root")
    disabled_commands: Tuple[str, ...] = ()
    show_dot_files: bool = True
    upload_max_size: Union[int, str] = "50M"
    archivers: Tuple[str, ...] = ()
    extractors: Tuple[str, ...] = ()
    default_perms: CapabilitySet = Field(default_factory=CapabilitySet)
    perms: Tuple[PermissionRule, ...] = ()
    i18n: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MESSAGES))
    mime_handler: Any = Field(default_factory=MimeType)
    image_size_handler: Optional[Any] = Field(default_factory=ImageSize)
    image_resize_handler: Optional[Any] = Field(default_factory=ImageResize)
    original_filename: Callable[[Any], str] = _original_filename

    @field_validator("root")
    @classmethod
    def _check_root(cls, value: str) -> str:
        root = normalize_path(value)
        if not os.path.isdir(root):
            raise ValueError(f"Root is not a directory: {root}")
        return root

    @field_validator("url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("disabled_commands")
    @classmethod
    def _check_commands(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        known = {command.value for command in Command}
        unknown = [name for name in value if name not in known]
        if unknown:
            raise ValueError(f"Unknown commands: {', '.join(unknown)}")
        return value

    @field_validator("upload_max_size")
    @classmethod
    def _check_upload_size(cls, value: Union[int, str]) -> Union[int, str]:
        parse_size(value)
        return value

    @field_validator("i18n", mode="before")
    @classmethod
    def _merge_messages(cls, value: Any) -> Dict[str, str]:
        return {**DEFAULT_MESSAGES, **(value or {})}

    @field_validator("mime_handler")
    @classmethod
    def _check_mime_handler(cls, value: Any) -> Any:
        if not isinstance(value, MimeResolver):
            raise ValueError("Mime Handler is invalid")
        return value

    @field_validator("image_size_handler")
    @classmethod
    def _check_image_size_handler(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, ImageSizeResolver):
            raise ValueError("Image Size Handler is invalid")
        return value

    @field_validator("image_resize_handler")
    @classmethod
    def _check_image_resize_handler(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, ImageResizer):
            raise ValueError("Image Resize Handler is invalid")
        return value

    def message(self, key: str, **kwargs: Any) -> str:
        """Localized user-visible message."""
        return self.i18n[key].format(**kwargs)

    @property
    def images_enabled(self) -> bool:
        """Both image handlers are configured."""
        return self.image_size_handler is not None and self.image_resize_handler is not None


def build_config(**options: Any) -> ConnectorConfig:
    """
    Build a connector configuration from options merged over the defaults.

    Args:
        **options: Any ConnectorConfig field; ``root`` and ``url`` are required

    Returns:
        Frozen ConnectorConfig

    Raises:
        ConfigurationError: If a required option is missing or invalid
    """
    for required in ("url", "root"):
        if options.get(required) in (None, ""):
            raise ConfigurationError(f"Missing required '{required}' option")

    try:
        return ConnectorConfig(**options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
