"""Access policy and reentrancy guard for vault entry points."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Set

from .errors import ReentrantCall, Unauthorized

logger = logging.getLogger(__name__)


class Capability(Enum):
    """Privileges a principal may hold."""
    ADMIN = "admin"
    DISTRIBUTE = "distribute"


class AccessPolicy:
    """
    Capabilities per principal, checked at the start of privileged operations.

    The owner implicitly holds every capability. DISTRIBUTE may be granted to
    other callers (keepers) so they can start rounds without full admin.
    """

    def __init__(self, owner: str):
        self.owner = owner
        self._grants: Dict[str, Set[Capability]] = {}

    def has(self, principal: str, capability: Capability) -> bool:
        if principal == self.owner:
            return True
        return capability in self._grants.get(principal, set())

    def require(self, principal: str, capability: Capability) -> None:
        if not self.has(principal, capability):
            raise Unauthorized(
                f"{principal} lacks {capability.value} capability",
                details={'principal': principal, 'capability': capability.value}
            )

    def grant(self, principal: str, capability: Capability) -> None:
        self._grants.setdefault(principal, set()).add(capability)
        logger.info("Granted %s to %s", capability.value, principal)

    def revoke(self, principal: str, capability: Capability) -> None:
        granted = self._grants.get(principal)
        if granted is None:
            return
        granted.discard(capability)
        if not granted:
            del self._grants[principal]
        logger.info("Revoked %s from %s", capability.value, principal)


class NonReentrantGuard:
    """In-call flag held for the duration of a state-mutating operation.

    Usage:
        with guard:
            ...  # re-entering raises ReentrantCall
    """

    def __init__(self):
        self._entered = False

    def __enter__(self) -> "NonReentrantGuard":
        if self._entered:
            raise ReentrantCall("Reentrant call into vault rejected")
        self._entered = True
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._entered = False
        return False
