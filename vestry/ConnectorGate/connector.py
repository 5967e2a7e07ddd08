"""
ConnectorGate command dispatcher.

A Connector receives one request (a command name plus identifiers),
performs the command against the sandbox root and returns transport
headers plus the response payload. Handlers report failure by raising a
ConnectorError; the dispatcher turns it into the ``error`` field and
re-renders the current directory so the client always gets a consistent
listing.
"""

import os
import shutil
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from vestry.shared.gate import GateLogger

from .codec import PathCodec
from .config import ConnectorConfig, build_config
from .descriptors import ResponseBuilder
from .errors import (
    AccessDenied,
    AlreadyExists,
    CommandNotImplemented,
    ConnectorError,
    DecodeError,
    DoesNotExist,
    InvalidCommand,
    OperationFailed,
)
from .models import Capability, Command, ConnectorRequest, ConnectorResponse
from .permissions import PermissionResolver
from .security import PathSecurityError, check_file_size, ensure_within_root, sanitize_filename

_log = GateLogger.get("ConnectorGate")

Headers = Dict[str, str]


@dataclass
class Exchange:
    """State of a single request."""
    params: ConnectorRequest
    response: ConnectorResponse = field(default_factory=ConnectorResponse)
    headers: Headers = field(default_factory=dict)
    current: Optional[str] = None
    target: Optional[str] = None
    targets: List[str] = field(default_factory=list)
    tree: bool = False

    @property
    def cmd(self) -> str:
        return self.params.cmd or ""


def file_type(path: str) -> str:
    """Kind of a path as used in user-visible messages."""
    if os.path.islink(path):
        return "link"
    if os.path.isdir(path):
        return "directory"
    return "file"


def duplicate_path(path: str) -> str:
    """First free sibling named '<stem> copy N<ext>'."""
    directory, name = os.path.split(path)
    if os.path.isdir(path):
        stem, ext = name, ""
    else:
        stem, ext = os.path.splitext(name)

    copy = 1
    while True:
        candidate = os.path.join(directory, f"{stem} copy {copy}{ext}")
        if not os.path.lexists(candidate):
            return candidate
        copy += 1


def _is_within(path: str, ancestor: str) -> bool:
    try:
        return os.path.commonpath([ancestor, path]) == ancestor
    except ValueError:
        return False


class Connector:
    """Dispatches file-manager commands against one sandbox root."""

    def __init__(self, config: ConnectorConfig):
        self.config = config
        self.codec = PathCodec(config.root)
        self.resolver = PermissionResolver(self.codec, config.perms, config.default_perms)
        self.builder = ResponseBuilder(config, self.codec, self.resolver)

        self._handlers: Dict[Command, Callable[[Exchange], None]] = {
            Command.OPEN: self._open,
            Command.MKDIR: self._mkdir,
            Command.MKFILE: self._mkfile,
            Command.RENAME: self._rename,
            Command.UPLOAD: self._upload,
            Command.PING: self._ping,
            Command.PASTE: self._paste,
            Command.RM: self._rm,
            Command.DUPLICATE: self._duplicate,
            Command.READ: self._read,
            Command.EDIT: self._edit,
            Command.RESIZE: self._resize,
            Command.EXTRACT: self._not_implemented,
            Command.ARCHIVE: self._not_implemented,
            Command.TMB: self._not_implemented,
        }

    @classmethod
    def from_options(cls, **options: Any) -> "Connector":
        """Build a connector from configuration options."""
        return cls(build_config(**options))

    @property
    def root(self) -> str:
        return self.codec.root

    def to_hash(self, path: str) -> str:
        """Identifier of a path under the root."""
        return self.codec.encode(path)

    def from_hash(self, identifier: str) -> str:
        """Path of an identifier (not sandbox-checked)."""
        return self.codec.decode(identifier)

    # ==================== Dispatch ====================

    def run(self, params: Mapping[str, Any]) -> Tuple[Headers, Dict[str, Any]]:
        """
        Execute one request.

        Args:
            params: Request fields (cmd, current, target, targets, ...)

        Returns:
            Tuple of (transport headers, response payload)
        """
        try:
            request = ConnectorRequest.model_validate(dict(params))
        except ValidationError as e:
            _log.warning(f"Rejected malformed request: {e}")
            response = ConnectorResponse(error=self.config.message("invalid_request"))
            return {}, response.to_dict()

        exchange = Exchange(params=request, tree=request.tree)
        self._dispatch(exchange)
        return exchange.headers, exchange.response.to_dict()

    def _dispatch(self, exchange: Exchange) -> None:
        try:
            command = self._command_for(exchange.cmd)
        except InvalidCommand as e:
            _log.warning(f"Rejected command {exchange.cmd!r}")
            exchange.response.error = str(e)
            return

        try:
            self._decode_handles(exchange)
        except DecodeError as e:
            _log.warning(f"{command.value}: {e}")
            exchange.response.error = self.config.message("invalid_identifier")
            return

        _log.debug(f"Dispatching {command.value}")
        try:
            self._handlers[command](exchange)
        except ConnectorError as e:
            _log.warning(f"{command.value} failed: {e}")
            self._fail(exchange, str(e))
        except OSError as e:
            _log.warning(f"{command.value} failed: {e}")
            self._fail(exchange, self.config.message("operation_failed", cmd=command.value))

    def _command_for(self, name: str) -> Command:
        try:
            command = Command(name)
        except ValueError:
            command = None
        if command is None or command.value in self.config.disabled_commands:
            raise InvalidCommand(self.config.message("invalid_command", cmd=name))
        return command

    def _decode_handles(self, exchange: Exchange) -> None:
        params = exchange.params
        if params.current:
            exchange.current = self.codec.decode(params.current)
        if params.target:
            exchange.target = self.codec.decode(params.target)
        exchange.targets = [self.codec.decode(t) for t in params.targets or []]

    def _fail(self, exchange: Exchange, message: str) -> None:
        exchange.response.error = message
        if exchange.response.cwd is not None or exchange.cmd == Command.PING.value:
            return

        directory = exchange.current
        if directory is None or not self.codec.contains(directory) or not os.path.isdir(directory):
            directory = self.root
        try:
            self._show(exchange, directory)
        except OSError as e:
            _log.error(f"Cannot render {directory}: {e}")

    # ==================== Helpers ====================

    def _current(self, exchange: Exchange) -> str:
        return exchange.current or self.root

    def _require_target(self, exchange: Exchange) -> str:
        if exchange.target is None:
            raise OperationFailed(self.config.message("invalid_request"))
        return exchange.target

    def _entry(self, directory: str, name: Optional[str], failure: str) -> str:
        """Path of a new entry ``name`` directly inside ``directory``."""
        path = self.codec.join(directory, name or "")
        if not name or os.path.dirname(path) != directory:
            raise OperationFailed(failure)
        return path

    def _guard(self, *paths: str) -> None:
        try:
            ensure_within_root(self.root, *paths)
        except PathSecurityError as e:
            _log.warning(f"Sandbox violation: {e}")
            raise AccessDenied(self.config.message("access_denied")) from e

    def _require(self, path: str, *capabilities: Capability) -> None:
        for capability in capabilities:
            if self.resolver.denies(path, capability):
                raise AccessDenied(self.config.message("access_denied"))

    def _show(self, exchange: Exchange, directory: str) -> None:
        response = exchange.response
        response.cwd = self.builder.cwd(directory)
        response.cdc = self.builder.children(directory)

        if exchange.tree:
            response.tree = self.builder.tree()

        if exchange.params.init:
            response.disabled = list(self.config.disabled_commands)
            response.params = self.builder.init_params()

    # ==================== Commands ====================

    def _open(self, exchange: Exchange) -> None:
        target = exchange.target
        if target is None:
            self._show(exchange, self.root)
            return

        self._guard(target)
        if os.path.isfile(target):
            raise CommandNotImplemented(self.config.message("not_implemented", cmd=exchange.cmd))
        if os.path.isdir(target):
            self._show(exchange, target)
        else:
            exchange.response.error = self.config.message("directory_missing")
            self._show(exchange, self.root)

    def _mkdir(self, exchange: Exchange) -> None:
        current = self._current(exchange)
        self._guard(current)
        directory = self._entry(current, exchange.params.name, self.config.message("mkdir_failed"))
        self._guard(directory)
        self._require(current, Capability.WRITE)
        self._require(directory, Capability.WRITE)

        if os.path.lexists(directory):
            raise AlreadyExists(self.config.message("mkdir_failed"))
        try:
            os.mkdir(directory)
        except OSError as e:
            _log.warning(f"mkdir {directory}: {e}")
            raise OperationFailed(self.config.message("mkdir_failed")) from e

        _log.info(f"Created directory {directory}")
        exchange.tree = True
        exchange.response.select = [self.codec.encode(directory)]
        self._show(exchange, current)

    def _mkfile(self, exchange: Exchange) -> None:
        current = self._current(exchange)
        self._guard(current)
        path = self._entry(current, exchange.params.name, self.config.message("mkfile_failed"))
        self._guard(path)
        self._require(current, Capability.WRITE)
        self._require(path, Capability.WRITE)

        if os.path.lexists(path):
            raise AlreadyExists(self.config.message("mkfile_failed"))
        try:
            with open(path, "x"):
                pass
        except OSError as e:
            _log.warning(f"mkfile {path}: {e}")
            raise OperationFailed(self.config.message("mkfile_failed")) from e

        _log.info(f"Created file {path}")
        exchange.response.select = [self.codec.encode(path)]
        self._show(exchange, current)

    def _rename(self, exchange: Exchange) -> None:
        target = self._require_target(exchange)
        current = self._current(exchange)
        self._guard(target, current)
        ftype = file_type(target)
        destination = self._entry(
            current, exchange.params.name, self.config.message("rename_failed", ftype=ftype)
        )
        self._guard(destination)

        self._require(target, Capability.READ, Capability.WRITE, Capability.REMOVE)
        self._require(destination, Capability.WRITE)

        if os.path.lexists(destination):
            raise AlreadyExists(self.config.message(
                "rename_exists", ftype=ftype, name=os.path.basename(destination)
            ))
        try:
            os.rename(target, destination)
        except OSError as e:
            _log.warning(f"rename {target} -> {destination}: {e}")
            raise OperationFailed(self.config.message("rename_failed", ftype=ftype)) from e

        _log.info(f"Renamed {target} -> {destination}")
        exchange.tree = exchange.tree or os.path.isdir(destination)
        exchange.response.select = [self.codec.encode(destination)]
        self._show(exchange, current)

    def _upload(self, exchange: Exchange) -> None:
        current = self._current(exchange)
        self._guard(current)
        self._require(current, Capability.WRITE)

        response = exchange.response
        select = []
        for upload in exchange.params.upload:
            source = getattr(upload, "path", None)
            if source is None:
                response.add_error_detail(str(upload), self.config.message("upload_item_failed"))
                continue

            original = self.config.original_filename(upload) or ""
            name = sanitize_filename(original)
            if not name:
                response.add_error_detail(original, self.config.message("upload_invalid_name"))
                continue

            destination = self.codec.join(current, name)
            if os.path.isdir(destination) or self.resolver.denies(destination, Capability.WRITE):
                response.add_error_detail(name, self.config.message("access_denied"))
                continue

            try:
                allowed, reason = check_file_size(os.path.getsize(source), self.config.upload_max_size)
                if not allowed:
                    _log.info(f"Rejected upload {name}: {reason}")
                    response.add_error_detail(name, self.config.message(
                        "upload_too_large", limit=self.config.upload_max_size
                    ))
                    continue
                shutil.move(source, destination)
            except OSError as e:
                _log.warning(f"upload {name}: {e}")
                response.add_error_detail(name, self.config.message("upload_item_failed"))
                continue

            _log.info(f"Uploaded {destination}")
            select.append(self.codec.encode(destination))

        response.select = select
        if response.error_data:
            response.error = self.config.message("upload_failed")
        self._show(exchange, current)

    def _ping(self, exchange: Exchange) -> None:
        exchange.headers["Connection"] = "Close"

    def _paste(self, exchange: Exchange) -> None:
        current = self._current(exchange)
        if not exchange.params.dst:
            raise OperationFailed(self.config.message("invalid_request"))
        try:
            destination_dir = self.codec.decode(exchange.params.dst)
        except DecodeError as e:
            raise DecodeError(self.config.message("invalid_identifier")) from e

        self._guard(current, destination_dir, *exchange.targets)
        self._require(destination_dir, Capability.WRITE)

        response = exchange.response
        cut = exchange.params.cut > 0
        for source in exchange.targets:
            name = os.path.basename(source)
            destination = self.codec.join(destination_dir, name)

            if os.path.lexists(destination):
                response.add_error_detail(name, self.config.message(
                    "paste_exists", directory=self.codec.relative(destination_dir)
                ))
                continue

            denied = self.resolver.denies(source, Capability.READ)
            if cut:
                denied = denied or self.resolver.denies(source, Capability.REMOVE)
            if denied:
                response.add_error_detail(name, self.config.message("access_denied"))
                continue

            if _is_within(destination, source):
                response.add_error_detail(name, self.config.message("paste_item_failed"))
                continue

            try:
                if cut:
                    shutil.move(source, destination)
                elif os.path.isdir(source):
                    shutil.copytree(source, destination, symlinks=True)
                else:
                    shutil.copy(source, destination)
            except OSError as e:
                _log.warning(f"paste {source} -> {destination}: {e}")
                response.add_error_detail(name, self.config.message("paste_item_failed"))
                continue

            _log.info(f"{'Moved' if cut else 'Copied'} {source} -> {destination}")

        if response.error_data:
            response.error = self.config.message("paste_failed")
        exchange.tree = True
        self._show(exchange, current)

    def _rm(self, exchange: Exchange) -> None:
        current = self._current(exchange)
        if not exchange.targets:
            raise OperationFailed(self.config.message("rm_empty"))

        self._guard(current, *exchange.targets)
        for target in exchange.targets:
            self._require(target, Capability.REMOVE)

        for target in exchange.targets:
            if os.path.isdir(target) and not os.path.islink(target):
                shutil.rmtree(target)
                _log.info(f"Removed {target}")
            elif os.path.lexists(target):
                os.remove(target)
                _log.info(f"Removed {target}")

        exchange.tree = True
        self._show(exchange, current)

    def _duplicate(self, exchange: Exchange) -> None:
        target = self._require_target(exchange)
        current = self._current(exchange)
        parent = os.path.dirname(target)
        self._guard(target, current, parent)

        ftype = file_type(target)
        if not os.path.lexists(target):
            raise DoesNotExist(self.config.message("duplicate_failed", ftype=ftype))
        self._require(target, Capability.READ)
        self._require(parent, Capability.WRITE)

        duplicate = duplicate_path(target)
        try:
            if os.path.isdir(target):
                shutil.copytree(target, duplicate, symlinks=True)
            else:
                shutil.copy(target, duplicate)
        except OSError as e:
            _log.warning(f"duplicate {target}: {e}")
            raise OperationFailed(self.config.message("duplicate_failed", ftype=ftype)) from e

        _log.info(f"Duplicated {target} -> {duplicate}")
        exchange.tree = exchange.tree or os.path.isdir(duplicate)
        exchange.response.select = [self.codec.encode(duplicate)]
        self._show(exchange, current)

    def _read(self, exchange: Exchange) -> None:
        target = self._require_target(exchange)
        self._guard(target)

        if not self.resolver.resolve(target).read:
            raise AccessDenied(self.config.message("access_denied"))
        try:
            with open(target, "r", encoding="utf-8") as f:
                exchange.response.content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            _log.warning(f"read {target}: {e}")
            raise OperationFailed(self.config.message("read_failed")) from e

    def _edit(self, exchange: Exchange) -> None:
        target = self._require_target(exchange)
        self._guard(target)
        self._require(target, Capability.WRITE)

        try:
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(exchange.params.content or "")
        except OSError as e:
            _log.warning(f"edit {target}: {e}")
            raise OperationFailed(self.config.message("edit_failed")) from e

        _log.info(f"Saved {target}")
        exchange.response.file = self.builder.child(target)

    def _resize(self, exchange: Exchange) -> None:
        resizer = self.config.image_resize_handler
        if resizer is None:
            raise CommandNotImplemented(self.config.message("not_implemented", cmd=exchange.cmd))

        target = self._require_target(exchange)
        current = self._current(exchange)
        self._guard(target, current)

        if not os.path.isfile(target):
            raise DoesNotExist(self.config.message("resize_missing"))
        self._require(target, Capability.WRITE)

        try:
            resizer.resize(target, exchange.params.width, exchange.params.height)
        except (OSError, ValueError) as e:
            _log.warning(f"resize {target}: {e}")
            raise OperationFailed(self.config.message("resize_failed")) from e

        _log.info(f"Resized {target} to {exchange.params.width}x{exchange.params.height}")
        exchange.response.select = [self.codec.encode(target)]
        self._show(exchange, current)

    def _not_implemented(self, exchange: Exchange) -> None:
        raise CommandNotImplemented(self.config.message("not_implemented", cmd=exchange.cmd))
