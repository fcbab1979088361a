"""Resource lifecycle status and its state machine.

    UNKNOWN  -> LOADING | CREATING
    LOADING  -> ACTIVE | NOT_FOUND | ERROR
    CREATING -> ACTIVE | ERROR
    UPDATING -> ACTIVE | ERROR
    DELETING -> DELETED | ERROR
    ACTIVE   -> LOADING | UPDATING | DELETING
    NOT_FOUND-> LOADING | CREATING
    ERROR    -> LOADING | CREATING | UPDATING | DELETING
    DELETED  (terminal)
"""

from enum import StrEnum

from aztoolkit.exceptions import InvariantViolation


class Status(StrEnum):
    """Lifecycle status of a resource."""

    UNKNOWN = "unknown"  # placeholder reference, never loaded
    LOADING = "loading"
    ACTIVE = "active"
    NOT_FOUND = "not_found"
    ERROR = "error"
    CREATING = "creating"
    UPDATING = "updating"
    DELETING = "deleting"
    DELETED = "deleted"

    @property
    def is_transitional(self) -> bool:
        return self in _TRANSITIONAL

    @property
    def is_terminal(self) -> bool:
        return self in (Status.DELETED, Status.NOT_FOUND, Status.ERROR)


_TRANSITIONAL = frozenset({Status.LOADING, Status.CREATING, Status.UPDATING, Status.DELETING})

_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.UNKNOWN: frozenset({Status.LOADING, Status.CREATING}),
    Status.LOADING: frozenset({Status.ACTIVE, Status.NOT_FOUND, Status.ERROR}),
    Status.CREATING: frozenset({Status.ACTIVE, Status.ERROR}),
    Status.UPDATING: frozenset({Status.ACTIVE, Status.ERROR}),
    Status.DELETING: frozenset({Status.DELETED, Status.ERROR}),
    Status.ACTIVE: frozenset({Status.LOADING, Status.UPDATING, Status.DELETING}),
    Status.NOT_FOUND: frozenset({Status.LOADING, Status.CREATING}),
    Status.ERROR: frozenset({Status.LOADING, Status.CREATING, Status.UPDATING, Status.DELETING}),
    Status.DELETED: frozenset(),
}


def check_transition(current: Status, target: Status) -> None:
    """Validate a status transition.

    Raises:
        InvariantViolation: If `target` is not reachable from `current`
    """
    if target not in _TRANSITIONS[current]:
        raise InvariantViolation(f"Illegal status transition: {current} -> {target}")


__all__ = ["Status", "check_transition"]
