"""
aztoolkit Data Models

Small value types shared by the module framework, kept free of imports from
the rest of the package to avoid circular dependencies.
"""

from .capabilities import Capability
from .remote_state import Deleted, RemoteState, Resolved, Unresolved, resolved_or_none
from .status import Status, check_transition

__all__ = [
    "Capability",
    "Deleted",
    "RemoteState",
    "Resolved",
    "Status",
    "Unresolved",
    "check_transition",
    "resolved_or_none",
]
