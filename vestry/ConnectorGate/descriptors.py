"""
ConnectorGate response descriptors.

Builds the cwd, cdc and tree records the client renders.
"""

import os
from datetime import datetime
from typing import FrozenSet, List
from urllib.parse import quote

from vestry.shared.gate import GateLogger

from .codec import PathCodec
from .config import ConnectorConfig
from .models import DirectoryDescriptor, InitParams, NodeDescriptor, TreeNode
from .permissions import PermissionResolver

_log = GateLogger.get("ConnectorGate")

DIRECTORY_MIME = "directory"


def format_mtime(path: str) -> str:
    """Last-modified time of a path, falling back to the link itself."""
    try:
        mtime = os.stat(path).st_mtime
    except FileNotFoundError:
        # Dangling symlink
        mtime = os.lstat(path).st_mtime
    return datetime.fromtimestamp(mtime).astimezone().strftime("%Y-%m-%d %H:%M:%S %z")


def display_name(name: str) -> str:
    """Printable form of a filesystem name; undecodable bytes become U+FFFD."""
    return os.fsencode(name).decode("utf-8", "replace")


class ResponseBuilder:
    """Assembles descriptor records from paths."""

    def __init__(
        self,
        config: ConnectorConfig,
        codec: PathCodec,
        resolver: PermissionResolver,
    ):
        self._config = config
        self._codec = codec
        self._resolver = resolver

    def display_path(self, path: str) -> str:
        """Root-relative path prefixed with the home label."""
        relative = self._codec.relative(path)
        if relative == ".":
            return self._config.home
        return f"{self._config.home}/{display_name(relative)}"

    def url_for(self, path: str) -> str:
        return f"{self._config.url}/{quote(os.fsencode(self._codec.relative(path)))}"

    def cwd(self, path: str) -> DirectoryDescriptor:
        """Descriptor of the directory being viewed."""
        return DirectoryDescriptor(
            name=display_name(os.path.basename(path)),
            hash=self._codec.encode(path),
            mime=DIRECTORY_MIME,
            rel=self.display_path(path),
            size=0,
            date=format_mtime(path),
            **self._resolver.resolve(path).as_fields(),
        )

    def child(self, path: str) -> NodeDescriptor:
        """Descriptor of a single directory entry."""
        fields = {
            "name": display_name(os.path.basename(path)),
            "hash": self._codec.encode(path),
            "date": format_mtime(path),
            **self._resolver.resolve(path).as_fields(),
        }

        if os.path.isdir(path):
            fields.update(size=0, mime=DIRECTORY_MIME)
        elif os.path.islink(path):
            fields.update(link=None, link_to=None, parent=None)
        elif os.path.isfile(path):
            mime = self._config.mime_handler.mime(path)
            fields.update(size=os.path.getsize(path), mime=mime, url=self.url_for(path))

            if mime.startswith("image/") and self._config.images_enabled:
                try:
                    dimensions = self._config.image_size_handler.dimensions(path)
                except (OSError, ValueError) as e:
                    _log.debug(f"Cannot read image size of {path}: {e}")
                else:
                    fields.update(resize=True, dim=dimensions.as_text())

        return NodeDescriptor(**fields)

    def children(self, directory: str) -> List[NodeDescriptor]:
        """Descriptors of every visible entry of a directory, sorted by name."""
        descriptors = []
        for name in sorted(self._visible_names(directory)):
            try:
                descriptors.append(self.child(os.path.join(directory, name)))
            except OSError:
                # Vanished or unreadable entry
                continue
        return descriptors

    def tree(self) -> TreeNode:
        """Directory tree rooted at the sandbox root."""
        root = self._codec.root
        return TreeNode(
            name=self._config.home,
            hash=self._codec.encode(root),
            dirs=self._subtree(root, frozenset([os.path.realpath(root)])),
            **self._resolver.resolve(root).as_fields(),
        )

    def init_params(self) -> InitParams:
        return InitParams(
            dot_files=self._config.show_dot_files,
            upl_max_size=str(self._config.upload_max_size),
            archives=list(self._config.archivers),
            extract=list(self._config.extractors),
            url=self._config.url,
        )

    def _subtree(self, directory: str, ancestors: FrozenSet[str]) -> List[TreeNode]:
        try:
            names = [
                name for name in self._visible_names(directory)
                if os.path.isdir(os.path.join(directory, name))
            ]
        except OSError as e:
            _log.debug(f"Cannot list {directory}: {e}")
            return []

        nodes = []
        for name in sorted(names, key=str.lower):
            path = os.path.join(directory, name)
            real = os.path.realpath(path)
            if real in ancestors:
                _log.warning(f"Skipping directory cycle at {path}")
                continue

            nodes.append(TreeNode(
                name=display_name(name),
                hash=self._codec.encode(path),
                dirs=self._subtree(path, ancestors | {real}),
                **self._resolver.resolve(path).as_fields(),
            ))
        return nodes

    def _visible_names(self, directory: str) -> List[str]:
        names = os.listdir(directory)
        if not self._config.show_dot_files:
            names = [name for name in names if not name.startswith(".")]
        return names
