"""
ConnectorGate Pydantic models.

Defines capability sets, request/response payloads and the descriptor
records sent to the file-manager client.
"""

from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Command(str, Enum):
    """Commands understood by the connector."""
    ARCHIVE = "archive"
    DUPLICATE = "duplicate"
    EDIT = "edit"
    EXTRACT = "extract"
    MKDIR = "mkdir"
    MKFILE = "mkfile"
    OPEN = "open"
    PASTE = "paste"
    PING = "ping"
    READ = "read"
    RENAME = "rename"
    RESIZE = "resize"
    RM = "rm"
    TMB = "tmb"
    UPLOAD = "upload"


class Capability(str, Enum):
    """A single capability of a capability set."""
    READ = "read"
    WRITE = "write"
    REMOVE = "remove"


class PermissionFields(BaseModel):
    """read/write/rm flags shared by capability sets and descriptors."""
    model_config = ConfigDict(populate_by_name=True)

    read: bool = True
    write: bool = True
    remove: bool = Field(default=True, alias="rm")


class CapabilitySet(PermissionFields):
    """Effective {read, write, remove} permissions for a path."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def allows(self, capability: Capability) -> bool:
        return getattr(self, Capability(capability).value)

    def as_fields(self) -> Dict[str, bool]:
        """Keyword arguments for merging into a descriptor."""
        return {"read": self.read, "write": self.write, "remove": self.remove}


class Dimensions(BaseModel):
    """Pixel size of an image."""
    width: int
    height: int

    def as_text(self) -> str:
        return f"{self.width}x{self.height}"


class UploadedFile(BaseModel):
    """A file received by the transport layer and parked on disk."""
    path: str = Field(description="Temporary file holding the uploaded bytes")
    filename: str = Field(description="Original client-side filename")


class NodeDescriptor(PermissionFields):
    """Descriptor of one directory entry (an element of ``cdc``)."""
    name: str
    hash: str
    date: str
    mime: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    resize: Optional[bool] = None
    dim: Optional[str] = None
    # Symlink placeholders, target resolution is not implemented
    link: Optional[str] = None
    link_to: Optional[str] = Field(default=None, alias="linkTo")
    parent: Optional[str] = None


class DirectoryDescriptor(PermissionFields):
    """Descriptor of the directory being viewed (``cwd``)."""
    name: str
    hash: str
    mime: str = "directory"
    rel: str
    size: int = 0
    date: str


class TreeNode(PermissionFields):
    """A directory in the recursive folder tree."""
    name: str
    hash: str
    dirs: List["TreeNode"] = Field(default_factory=list)


class InitParams(BaseModel):
    """Client parameters sent on an ``init`` open."""
    model_config = ConfigDict(populate_by_name=True)

    dot_files: bool = Field(alias="dotFiles")
    upl_max_size: str = Field(alias="uplMaxSize")
    archives: List[str] = Field(default_factory=list)
    extract: List[str] = Field(default_factory=list)
    url: str


class ConnectorRequest(BaseModel):
    """Validated request parameters."""
    model_config = ConfigDict(extra="ignore")

    cmd: Optional[str] = None
    current: Optional[str] = None
    target: Optional[str] = None
    targets: Optional[List[str]] = Field(
        default=None, validation_alias=AliasChoices("targets", "targets[]")
    )
    name: Optional[str] = None
    content: Optional[str] = None
    dst: Optional[str] = None
    cut: int = 0
    width: int = 0
    height: int = 0
    tree: bool = False
    init: bool = False
    upload: List[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("upload", "upload[]")
    )

    @field_validator("targets", mode="before")
    @classmethod
    def _single_target(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("cut", "width", "height", mode="before")
    @classmethod
    def _blank_number(cls, value: Any) -> Any:
        return 0 if value in ("", None) else value

    @field_validator("tree", "init", mode="before")
    @classmethod
    def _blank_flag(cls, value: Any) -> Any:
        return False if value in ("", None) else value


class ConnectorResponse(BaseModel):
    """
    Outgoing response payload.

    Only the fields a handler actually assigned are serialized.
    """
    model_config = ConfigDict(populate_by_name=True)

    cwd: Optional[DirectoryDescriptor] = None
    cdc: Optional[List[NodeDescriptor]] = None
    tree: Optional[TreeNode] = None
    select: Optional[List[str]] = None
    error: Optional[str] = None
    error_data: Optional[Dict[str, str]] = Field(default=None, alias="errorData")
    disabled: Optional[List[str]] = None
    params: Optional[InitParams] = None
    content: Optional[str] = None
    file: Optional[NodeDescriptor] = None

    def add_error_detail(self, name: str, detail: str) -> None:
        """Record a per-item failure under ``errorData``."""
        if self.error_data is None:
            self.error_data = {}
        self.error_data[name] = detail

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
