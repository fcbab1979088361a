"""Draft - a pending create or update of a resource.

A draft is a field bag owned by the caller that created it. Nothing reaches
Azure until commit(); an abandoned draft has no effect. A successful commit
consumes the draft, a failed one may be retried.

Example:
    >>> draft = module.new_draft_for_create("pg1", "my-rg")
    >>> draft.set("location", "westus2").set("version", "16")
    >>> server = draft.commit()
    >>> server.status
    <Status.ACTIVE: 'active'>
"""

import threading
from typing import TYPE_CHECKING, Any

from aztoolkit.exceptions import ConfigurationError, InvariantViolation
from aztoolkit.resource_id import ResourceId

if TYPE_CHECKING:
    from aztoolkit.module import ResourceModule
    from aztoolkit.resource import Resource

_MASKED_FIELDS = ("password", "secret", "token")


class Draft:
    """Builder-like mutation session for one resource.

    Attributes:
        name: Target resource name
        resource_group: Target resource group
        origin: Resource being updated, None for a create
        resource: Entity produced by the last commit attempt
    """

    def __init__(
        self,
        module: "ResourceModule",
        name: str,
        resource_group: str | None,
        origin: "Resource | None" = None,
        fields: dict[str, Any] | None = None,
    ):
        self._module = module
        self.name = name
        self.resource_group = resource_group
        self.origin = origin
        self.resource: Resource | None = None
        self._fields: dict[str, Any] = dict(fields or {})
        self._commit_lock = threading.Lock()
        self._committed = False

    @classmethod
    def for_create(cls, module: "ResourceModule", name: str, resource_group: str | None) -> "Draft":
        return cls(module, name, resource_group)

    @classmethod
    def for_update(cls, origin: "Resource") -> "Draft":
        return cls(origin.module, origin.name, origin.resource_group, origin=origin)

    @property
    def module(self) -> "ResourceModule":
        return self._module

    @property
    def id(self) -> ResourceId:
        return self.module.resource_id(self.name, self.resource_group)

    @property
    def is_create(self) -> bool:
        return self.origin is None

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def fields(self) -> dict[str, Any]:
        """Copy of the requested changes."""
        return dict(self._fields)

    def set(self, key: str, value: Any) -> "Draft":
        self._ensure_open()
        self._fields[key] = value
        return self

    def update(self, **fields: Any) -> "Draft":
        self._ensure_open()
        self._fields.update(fields)
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._fields.get(key, default)

    def require(self, key: str) -> Any:
        """Return a field that must be set.

        Raises:
            ConfigurationError: If the field is missing or None
        """
        value = self._fields.get(key)
        if value is None:
            raise ConfigurationError(f"'{key}' is required to commit '{self.name}'")
        return value

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def commit(self) -> "Resource":
        """Create or update the remote resource through the module.

        Raises:
            InvariantViolation: If the draft was already committed
            ConfigurationError: If the module's parent is not resolved
            RemoteOperationError: If Azure rejects the change
        """
        return self.module.create_or_update(self)

    def _begin_commit(self) -> None:
        if not self._commit_lock.acquire(blocking=False):
            raise InvariantViolation(f"Draft '{self.name}' is already being committed")
        if self._committed:
            self._commit_lock.release()
            raise InvariantViolation(f"Draft '{self.name}' was already committed")

    def _end_commit(self, succeeded: bool) -> None:
        self._committed = succeeded
        self._commit_lock.release()

    def _ensure_open(self) -> None:
        if self._committed:
            raise InvariantViolation(f"Draft '{self.name}' was already committed")

    def __repr__(self) -> str:
        shown = {
            k: ("***" if any(m in k.lower() for m in _MASKED_FIELDS) else v)
            for k, v in self._fields.items()
        }
        kind = "create" if self.is_create else "update"
        return f"Draft({kind} {self.name!r} in {self.resource_group!r}, fields={shown})"


__all__ = ["Draft"]
