"""
Tests for ConnectorGate security helpers.
"""

import os

import pytest

from vestry.ConnectorGate.errors import AccessDenied
from vestry.ConnectorGate.security import (
    PathSecurityError,
    check_file_size,
    ensure_within_root,
    parse_size,
    sanitize_filename,
    validate_path_within_root,
)


class TestValidatePathWithinRoot:
    """Tests for validate_path_within_root()."""

    def test_root_and_descendants_are_valid(self, tmp_path):
        assert validate_path_within_root(str(tmp_path), str(tmp_path))[0] is True
        assert validate_path_within_root(str(tmp_path / "a" / "b"), str(tmp_path))[0] is True

    def test_traversal_rejected(self, tmp_path):
        is_valid, resolved, error = validate_path_within_root(
            str(tmp_path / "a" / ".." / ".."), str(tmp_path)
        )

        assert is_valid is False
        assert resolved == os.path.dirname(str(tmp_path))
        assert "escapes root" in error

    def test_sibling_prefix_rejected(self, tmp_path):
        """A sibling sharing the root's name as prefix is outside."""
        assert validate_path_within_root(str(tmp_path) + "-other", str(tmp_path))[0] is False

    def test_null_byte_rejected(self, tmp_path):
        assert validate_path_within_root(str(tmp_path / "a\x00b"), str(tmp_path))[0] is False


class TestEnsureWithinRoot:
    """Tests for ensure_within_root()."""

    def test_passes_for_contained_paths(self, tmp_path):
        ensure_within_root(str(tmp_path), str(tmp_path / "a"), str(tmp_path / "b"))

    def test_raises_for_any_escape(self, tmp_path):
        with pytest.raises(PathSecurityError):
            ensure_within_root(str(tmp_path), str(tmp_path / "a"), "/etc/passwd")

    def test_is_an_access_error(self):
        assert issubclass(PathSecurityError, AccessDenied)


class TestSanitizeFilename:
    """Tests for sanitize_filename()."""

    @pytest.mark.parametrize("raw,expected", [
        ("report.pdf", "report.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\photo.jpg", "photo.jpg"),
        ("bad\x00name\x1f.txt", "badname.txt"),
        ("..", ""),
        (".", ""),
        ("", ""),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected

    def test_truncates_long_names_keeping_extension(self):
        name = sanitize_filename("x" * 300 + ".txt")

        assert len(name) == 255
        assert name.endswith(".txt")


class TestSizes:
    """Tests for parse_size() and check_file_size()."""

    @pytest.mark.parametrize("raw,expected", [
        (1024, 1024),
        ("1024", 1024),
        ("512K", 512 * 1024),
        ("50M", 50 * 1024 ** 2),
        ("50mb", 50 * 1024 ** 2),
        ("1.5G", int(1.5 * 1024 ** 3)),
    ])
    def test_parse_size(self, raw, expected):
        assert parse_size(raw) == expected

    @pytest.mark.parametrize("raw", ["", "fifty", "10X", "-1M"])
    def test_parse_size_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_size(raw)

    def test_check_file_size(self):
        assert check_file_size(1024, "1K") == (True, None)

        allowed, error = check_file_size(2048, "1K")

        assert allowed is False
        assert "exceeds limit" in error
