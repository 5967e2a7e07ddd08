"""
Pytest configuration and fixtures for Vestry tests.
"""

import struct
import sys
import zlib
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from vestry.Config.schema import CONFIG_SCHEMA
from vestry.ConnectorGate import Connector


@pytest.fixture
def sandbox(tmp_path: Path) -> Path:
    """
    Create a sample sandbox root.

    Layout:
        docs/readme.txt
        docs/nested/
        notes.txt
        photo.png (40x30)
        .hidden
    """
    root = tmp_path / "root"
    root.mkdir()

    docs = root / "docs"
    docs.mkdir()
    (docs / "readme.txt").write_text("Hello World")
    (docs / "nested").mkdir()

    (root / "notes.txt").write_text("some notes")
    (root / ".hidden").write_text("secret")
    Image.new("RGB", (40, 30), color="red").save(root / "photo.png")

    return root


@pytest.fixture
def make_connector(sandbox: Path) -> Callable[..., Connector]:
    """Factory building a connector over the sandbox with option overrides."""
    def factory(**options) -> Connector:
        options.setdefault("root", str(sandbox))
        options.setdefault("url", "http://files.example.com/root")
        return Connector.from_options(**options)

    return factory


@pytest.fixture
def connector(make_connector) -> Connector:
    """Connector over the sandbox with default options."""
    return make_connector()


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return (
        struct.pack(">I", len(data)) + kind + data
        + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)
    )


@pytest.fixture
def oversized_png() -> Callable[[Path], Path]:
    """Factory writing a pixel-less PNG whose header claims 30000x30000."""
    def factory(path: Path) -> Path:
        header = struct.pack(">IIBBBBB", 30000, 30000, 8, 2, 0, 0, 0)
        path.write_bytes(
            b"\x89PNG\r\n\x1a\n"
            + _png_chunk(b"IHDR", header)
            + _png_chunk(b"IDAT", b"")
            + _png_chunk(b"IEND", b"")
        )
        return path

    return factory


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every VESTRY_* variable from the environment."""
    for field in CONFIG_SCHEMA:
        # Teardown also removes variables set later by load_dotenv
        monkeypatch.setenv(field.env_var, "")
        monkeypatch.delenv(field.env_var)
    return monkeypatch


@pytest.fixture(autouse=True)
def reset_module_state():
    """Reset module-level state between tests."""
    yield

    # Reset ConnectorGate
    try:
        import vestry.ConnectorGate as connector_gate
        connector_gate._connector = None
        connector_gate._initialized = False
    except (ImportError, AttributeError):
        pass

    # Reset Config
    try:
        import vestry.Config as config_module
        config_module._manager = None
    except (ImportError, AttributeError):
        pass

