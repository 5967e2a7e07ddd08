"""
ConnectorGate path codec.

Maps paths under the sandbox root to opaque, transport-safe identifiers
and back. Identifiers look like ``v1_<payload>`` where the payload is the
unpadded URL-safe base64 of the root-relative path in filesystem encoding,
so names that are not valid UTF-8 round-trip unchanged; the root itself
encodes the reserved "/" marker.

Decoding does not enforce containment. A crafted identifier may decode to
a path outside the root, so callers must revalidate before acting on it.
"""

import base64
import binascii
import os
from typing import Callable, Dict

from .errors import DecodeError
from .security import normalize_path

IDENTIFIER_VERSION = "v1"
ROOT_MARKER = "/"

_SEPARATOR = "_"


def _encode_v1(relative: str) -> str:
    payload = base64.urlsafe_b64encode(os.fsencode(relative)).decode("ascii")
    return payload.rstrip("=")


def _decode_v1(payload: str) -> str:
    if not payload:
        raise DecodeError("Empty identifier payload")

    padded = payload + "=" * (-len(payload) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        relative = os.fsdecode(raw)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Malformed identifier: {e}") from e

    if not relative or "\x00" in relative:
        raise DecodeError("Malformed identifier: invalid path")
    return relative


_DECODERS: Dict[str, Callable[[str], str]] = {
    "v1": _decode_v1,
}


class PathCodec:
    """Bidirectional path <-> identifier mapping for one root."""

    def __init__(self, root: str):
        self._root = normalize_path(root)

    @property
    def root(self) -> str:
        return self._root

    def encode(self, path: str) -> str:
        """
        Encode a path under the root as an identifier.

        Args:
            path: Root or a descendant of root

        Returns:
            Opaque identifier string
        """
        relative = self.relative(path)
        if relative == ".":
            relative = ROOT_MARKER
        return f"{IDENTIFIER_VERSION}{_SEPARATOR}{_encode_v1(relative)}"

    def decode(self, identifier: str) -> str:
        """
        Decode an identifier back to an absolute, normalized path.

        Args:
            identifier: Identifier produced by encode()

        Returns:
            Absolute path (not guaranteed to lie inside the root)

        Raises:
            DecodeError: If the identifier is malformed
        """
        if not isinstance(identifier, str):
            raise DecodeError("Identifier must be a string")

        version, sep, payload = identifier.partition(_SEPARATOR)
        decoder = _DECODERS.get(version)
        if not sep or decoder is None:
            raise DecodeError(f"Unknown identifier format: {identifier!r}")

        relative = decoder(payload)
        if relative == ROOT_MARKER:
            return self._root
        return os.path.normpath(os.path.join(self._root, relative))

    def relative(self, path: str) -> str:
        """Root-relative form of a path using '/' separators ('.' for root)."""
        relative = os.path.relpath(path, self._root)
        return relative.replace(os.sep, "/")

    def contains(self, path: str) -> bool:
        """Check if a path is the root or one of its descendants."""
        try:
            return os.path.commonpath([self._root, normalize_path(path)]) == self._root
        except ValueError:
            return False

    def join(self, directory: str, name: str) -> str:
        """Normalized path of ``name`` inside ``directory``."""
        return os.path.normpath(os.path.join(directory, name))
