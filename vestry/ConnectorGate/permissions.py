"""
ConnectorGate permission resolution.

Effective capabilities of a path are the conjunction of what the
filesystem allows, what the configured rules allow and the global
defaults. Rules can only take capabilities away: a capability is denied
as soon as any matching rule sets it to False.
"""

import os
from typing import Dict, Optional, Sequence

from .codec import PathCodec
from .config import PermissionRule
from .models import Capability, CapabilitySet

# Three-valued capability: None means "undetermined" (path does not exist)
_Tristate = Optional[bool]


class PermissionResolver:
    """Computes capability sets for paths under one root."""

    def __init__(
        self,
        codec: PathCodec,
        rules: Sequence[PermissionRule],
        defaults: CapabilitySet,
    ):
        self._codec = codec
        self._rules = tuple(rules)
        self._defaults = defaults

    def resolve(self, path: str) -> CapabilitySet:
        """
        Compute the effective capability set of a path.

        A path that does not exist can be neither read nor written.
        """
        evaluated = self._evaluate(path)
        return CapabilitySet(
            read=bool(evaluated[Capability.READ]),
            write=bool(evaluated[Capability.WRITE]),
            remove=bool(evaluated[Capability.REMOVE]),
        )

    def denies(self, path: str, capability: Capability) -> bool:
        """
        Check whether a capability is explicitly denied for a path.

        Unlike resolve(), a path that does not exist yet is only denied a
        capability when a rule or a default takes it away. This is the
        check to use for the destination of a create or rename.
        """
        return self._evaluate(path)[Capability(capability)] is False

    def matching_rules(self, path: str) -> Sequence[PermissionRule]:
        """Rules whose pattern matches the path's root-relative form."""
        relative = self._codec.relative(path)
        return [rule for rule in self._rules if rule.matches(relative)]

    def _evaluate(self, path: str) -> Dict[Capability, _Tristate]:
        rules = self.matching_rules(path)
        exists = os.path.exists(path)

        read: _Tristate = os.access(path, os.R_OK) if exists else None
        read = self._narrow(read, rules, Capability.READ)

        write: _Tristate = os.access(path, os.W_OK) if exists else None
        write = self._narrow(write, rules, Capability.WRITE)

        remove: _Tristate = False if path == self._codec.root else write
        remove = self._narrow(remove, rules, Capability.REMOVE)

        # Regular files: write and remove are coupled
        if os.path.isfile(path):
            coupled = bool(write) and bool(remove)
            write = remove = coupled

        return {
            Capability.READ: read,
            Capability.WRITE: write,
            Capability.REMOVE: remove,
        }

    def _narrow(
        self,
        value: _Tristate,
        rules: Sequence[PermissionRule],
        capability: Capability,
    ) -> _Tristate:
        if value is False:
            return False
        if not self._defaults.allows(capability):
            return False
        if any(rule.denies(capability) for rule in rules):
            return False
        return value
