"""
ConnectorGate security module.

Provides sandbox revalidation, filename sanitizing and upload size checks.
"""

import os
import re
from typing import Tuple, Optional, Union

from .errors import AccessDenied


class PathSecurityError(AccessDenied):
    """Raised when a path fails sandbox validation."""
    pass


_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?)B?\s*$", re.IGNORECASE)


def normalize_path(path: str) -> str:
    """
    Normalize a path to an absolute form with '.' and '..' resolved.

    Args:
        path: Raw path string

    Returns:
        Normalized absolute path
    """
    path = os.path.expanduser(str(path))
    path = os.path.normpath(path)
    return os.path.abspath(path)


def validate_path_within_root(
    target_path: str,
    root: str
) -> Tuple[bool, str, Optional[str]]:
    """
    Validate that a target path is the root or one of its descendants.

    The check is lexical: symlinks inside the root are not followed.

    Args:
        target_path: Path to validate
        root: Sandbox root

    Returns:
        Tuple of (is_valid, resolved_path, error_message)
    """
    root_path = normalize_path(root)
    target = normalize_path(target_path)

    if "\x00" in target:
        return False, target, "Path contains a null byte"

    try:
        common = os.path.commonpath([root_path, target])
    except ValueError:
        # Different drives on Windows
        return False, target, f"Path is on a different drive: {target}"

    if common != root_path:
        return False, target, f"Path escapes root boundary: {target}"

    return True, target, None


def ensure_within_root(root: str, *paths: str) -> None:
    """
    Raise PathSecurityError unless every path lies inside the root.

    Args:
        root: Sandbox root
        *paths: Paths about to be acted on
    """
    for path in paths:
        is_valid, _, error = validate_path_within_root(path, root)
        if not is_valid:
            raise PathSecurityError(error)


def sanitize_filename(filename: str) -> str:
    """
    Sanitize an uploaded filename to a single safe path component.

    Args:
        filename: Raw filename as sent by the client

    Returns:
        Sanitized filename, possibly empty
    """
    # Browsers on Windows may send the full client-side path
    filename = filename.replace("\\", "/")
    filename = os.path.basename(filename)

    # Remove null bytes and other control characters
    filename = re.sub(r'[\x00-\x1f\x7f]', '', filename)

    if filename in (".", ".."):
        return ""

    # Limit length
    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        max_name_len = 255 - len(ext)
        filename = name[:max_name_len] + ext

    return filename


def parse_size(size: Union[str, int]) -> int:
    """
    Parse a human-readable size such as "50M" or "512K" into bytes.

    Args:
        size: Size string or byte count

    Returns:
        Number of bytes

    Raises:
        ValueError: If the size cannot be parsed
    """
    if isinstance(size, int):
        return size

    match = _SIZE_PATTERN.match(size)
    if match is None:
        raise ValueError(f"Invalid size: {size!r}")

    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.upper()])


def check_file_size(
    size_bytes: int,
    limit: Union[str, int]
) -> Tuple[bool, Optional[str]]:
    """
    Check if a file size is within the upload limit.

    Args:
        size_bytes: File size in bytes
        limit: Configured limit (e.g. "50M")

    Returns:
        Tuple of (is_allowed, error_message)
    """
    max_bytes = parse_size(limit)

    if size_bytes > max_bytes:
        size_mb = size_bytes / (1024 * 1024)
        return False, f"File size ({size_mb:.2f}MB) exceeds limit ({limit})"

    return True, None
