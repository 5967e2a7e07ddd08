"""
Tests for ConnectorGate permission resolution.
"""

import re

import pytest
from pydantic import ValidationError

from vestry.ConnectorGate.codec import PathCodec
from vestry.ConnectorGate.config import PermissionRule
from vestry.ConnectorGate.models import Capability, CapabilitySet
from vestry.ConnectorGate.permissions import PermissionResolver


def _resolver(sandbox, rules=(), defaults=None):
    return PermissionResolver(
        PathCodec(str(sandbox)),
        [PermissionRule.model_validate(rule) for rule in rules],
        defaults or CapabilitySet(),
    )


class TestPermissionRule:
    """Tests for PermissionRule parsing and matching."""

    def test_pair_form(self):
        """A (pattern, overrides) pair builds a rule."""
        rule = PermissionRule.model_validate(("docs", {"write": False}))

        assert rule.pattern == "docs"
        assert rule.write is False
        assert rule.read is None

    def test_rm_alias(self):
        rule = PermissionRule.model_validate({"pattern": "docs", "rm": False})

        assert rule.remove is False
        assert rule.denies(Capability.REMOVE) is True

    def test_compiled_pattern(self):
        """A compiled regex becomes a regex rule keeping its flags."""
        rule = PermissionRule.model_validate((re.compile(r"\.TXT$", re.IGNORECASE), {"read": False}))

        assert rule.regex is True
        assert rule.matches("docs/readme.txt") is True
        assert rule.matches("docs") is False

    def test_literal_match_is_exact(self):
        rule = PermissionRule(pattern="docs")

        assert rule.matches("docs") is True
        assert rule.matches("docs/readme.txt") is False

    def test_regex_uses_search(self):
        rule = PermissionRule(pattern=r"nested", regex=True)

        assert rule.matches("docs/nested") is True

    def test_invalid_regex_rejected(self):
        with pytest.raises(ValidationError):
            PermissionRule(pattern="(unclosed", regex=True)

    def test_true_override_does_not_deny(self):
        rule = PermissionRule(pattern="docs", write=True)

        assert rule.denies(Capability.WRITE) is False


class TestResolve:
    """Tests for PermissionResolver.resolve()."""

    def test_existing_directory_fully_allowed(self, sandbox):
        caps = _resolver(sandbox).resolve(str(sandbox / "docs"))

        assert caps == CapabilitySet(read=True, write=True, remove=True)

    def test_root_cannot_be_removed(self, sandbox):
        caps = _resolver(sandbox).resolve(str(sandbox))

        assert caps.read is True
        assert caps.write is True
        assert caps.remove is False

    def test_missing_path_cannot_be_read_or_written(self, sandbox):
        caps = _resolver(sandbox).resolve(str(sandbox / "missing.txt"))

        assert caps.read is False
        assert caps.write is False

    def test_rule_denies_matching_path(self, sandbox):
        resolver = _resolver(sandbox, rules=[("docs", {"write": False})])

        assert resolver.resolve(str(sandbox / "docs")).write is False
        assert resolver.resolve(str(sandbox / "notes.txt")).write is True

    def test_root_rule_uses_dot(self, sandbox):
        resolver = _resolver(sandbox, rules=[(".", {"read": False})])

        assert resolver.resolve(str(sandbox)).read is False

    def test_deny_wins_over_later_allow(self, sandbox):
        """Any matching rule that denies wins, regardless of order."""
        resolver = _resolver(sandbox, rules=[
            {"pattern": "docs", "write": False},
            {"pattern": "docs", "write": True},
        ])

        assert resolver.resolve(str(sandbox / "docs")).write is False

    def test_defaults_narrow_everything(self, sandbox):
        resolver = _resolver(sandbox, defaults=CapabilitySet(read=True, write=False, remove=True))

        caps = resolver.resolve(str(sandbox / "docs"))

        assert caps.write is False
        assert caps.remove is False

    def test_defaults_deny_remove_only(self, sandbox):
        resolver = _resolver(sandbox, defaults=CapabilitySet(remove=False))

        caps = resolver.resolve(str(sandbox / "docs"))

        assert caps.write is True
        assert caps.remove is False

    @pytest.mark.parametrize("overrides", [
        {"write": False},
        {"rm": False},
    ])
    def test_file_write_and_remove_are_coupled(self, sandbox, overrides):
        """For regular files resolved write always equals resolved remove."""
        resolver = _resolver(sandbox, rules=[("notes.txt", overrides)])

        caps = resolver.resolve(str(sandbox / "notes.txt"))

        assert caps.write is False
        assert caps.remove is False

    def test_coupling_does_not_apply_to_directories(self, sandbox):
        resolver = _resolver(sandbox, rules=[("docs", {"rm": False})])

        caps = resolver.resolve(str(sandbox / "docs"))

        assert caps.write is True
        assert caps.remove is False


class TestDenies:
    """Tests for PermissionResolver.denies()."""

    def test_missing_path_is_not_denied(self, sandbox):
        """A path about to be created is only denied by rules or defaults."""
        resolver = _resolver(sandbox)

        assert resolver.denies(str(sandbox / "new-folder"), Capability.WRITE) is False

    def test_missing_path_denied_by_rule(self, sandbox):
        resolver = _resolver(sandbox, rules=[(re.compile(r"^new"), {"write": False})])

        assert resolver.denies(str(sandbox / "new-folder"), Capability.WRITE) is True

    def test_missing_path_denied_by_default(self, sandbox):
        resolver = _resolver(sandbox, defaults=CapabilitySet(write=False))

        assert resolver.denies(str(sandbox / "new-folder"), Capability.WRITE) is True

    def test_matching_rules(self, sandbox):
        resolver = _resolver(sandbox, rules=[
            ("docs", {"write": False}),
            {"pattern": r"^docs", "regex": True, "read": False},
            ("notes.txt", {"rm": False}),
        ])

        matched = resolver.matching_rules(str(sandbox / "docs"))

        assert [rule.pattern for rule in matched] == ["docs", "^docs"]
