"""Explicit remote state of a resource.

A resource's authoritative data is either not fetched yet (Unresolved),
fetched (Resolved, carrying the SDK model), or gone (Deleted). Consumers
must handle every case instead of testing a nullable field.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Unresolved:
    """Remote data has not been fetched, or the resource does not exist."""


@dataclass(frozen=True)
class Resolved:
    """Remote data fetched from Azure."""

    handle: Any


@dataclass(frozen=True)
class Deleted:
    """The resource was deleted through this toolkit."""


RemoteState = Unresolved | Resolved | Deleted

UNRESOLVED = Unresolved()
DELETED = Deleted()


def resolved_or_none(state: RemoteState) -> Any:
    """Return the SDK model of a Resolved state, None otherwise."""
    if isinstance(state, Resolved):
        return state.handle
    return None


__all__ = ["DELETED", "UNRESOLVED", "Deleted", "RemoteState", "Resolved", "Unresolved", "resolved_or_none"]
