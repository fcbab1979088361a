"""Resource entity - status-tracked facade over local and remote state.

Philosophy:
- One Resource class for every kind; kinds differ by their Capability set
- Remote state is explicit (Unresolved / Resolved / Deleted)
- Local state holds the fields of a draft while it is being committed
- Status changes go through the state machine, under the entity's own lock,
  so readers never see remote, local, status and error out of step
- A resource holds its module; its sub-modules hold it back only weakly

Public API:
    Resource: The entity
    ResourceSnapshot: Consistent view of status, remote state, local fields and error
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aztoolkit.exceptions import (
    ConfigurationError,
    InvariantViolation,
    RemoteOperationError,
    ToolkitError,
)
from aztoolkit.models.capabilities import Capability
from aztoolkit.models.remote_state import UNRESOLVED, RemoteState, Resolved, resolved_or_none
from aztoolkit.models.status import Status, check_transition
from aztoolkit.resource_id import ResourceId

if TYPE_CHECKING:
    from aztoolkit.draft import Draft
    from aztoolkit.module import ResourceModule

logger = logging.getLogger(__name__)

_KEEP: Any = object()


@dataclass(frozen=True)
class ResourceSnapshot:
    status: Status
    remote_state: RemoteState
    local: dict[str, Any] | None
    error: BaseException | None


class Resource:
    """A named Azure resource managed by a ResourceModule.

    Example:
        >>> server = postgres.servers("sub-id").get("pg1", "my-rg")
        >>> server.status
        <Status.ACTIVE: 'active'>
        >>> server.remote.version
        '16'
    """

    def __init__(
        self,
        module: "ResourceModule",
        resource_id: ResourceId,
        remote: RemoteState = UNRESOLVED,
        capabilities: frozenset[Capability] | None = None,
    ):
        self._module = module
        self._id = resource_id
        self._capabilities = frozenset(
            capabilities if capabilities is not None else module.adapter.capabilities
        )
        self._lock = threading.RLock()
        self._remote: RemoteState = remote
        self._local: dict[str, Any] | None = None
        self._status = Status.ACTIVE if isinstance(remote, Resolved) else Status.UNKNOWN
        self._error: BaseException | None = None
        self._sub_modules: list[ResourceModule] | None = None

    @classmethod
    def from_remote(
        cls, module: "ResourceModule", raw: Any, name: str, resource_group: str | None
    ) -> "Resource":
        """Wrap a raw SDK model fetched from Azure."""
        return cls(module, module.resource_id(name, resource_group), Resolved(raw))

    @classmethod
    def placeholder(cls, module: "ResourceModule", name: str, resource_group: str | None) -> "Resource":
        """Reference to a resource that has not been loaded yet."""
        return cls(module, module.resource_id(name, resource_group))

    @property
    def id(self) -> ResourceId:
        return self._id

    @property
    def name(self) -> str:
        return self._id.name

    @property
    def resource_group(self) -> str | None:
        return self._id.resource_group

    @property
    def subscription_id(self) -> str:
        return self._id.subscription_id

    @property
    def module(self) -> "ResourceModule":
        return self._module

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    def has_capability(self, capability: Capability) -> bool:
        return capability in self._capabilities

    @property
    def status(self) -> Status:
        with self._lock:
            return self._status

    @property
    def remote_state(self) -> RemoteState:
        with self._lock:
            return self._remote

    @property
    def remote(self) -> Any:
        """Raw SDK model, None unless the remote state is Resolved."""
        with self._lock:
            return resolved_or_none(self._remote)

    @property
    def local(self) -> dict[str, Any] | None:
        """Fields of the draft currently being committed, if any."""
        with self._lock:
            return dict(self._local) if self._local is not None else None

    @property
    def error(self) -> BaseException | None:
        """Error of the last failed operation while status is ERROR."""
        with self._lock:
            return self._error

    def snapshot(self) -> ResourceSnapshot:
        with self._lock:
            local = dict(self._local) if self._local is not None else None
            return ResourceSnapshot(self._status, self._remote, local, self._error)

    def exists(self) -> bool:
        return self.status in (Status.ACTIVE, Status.UPDATING, Status.DELETING)

    def refresh(self) -> "Resource":
        """Reload remote state from Azure.

        Raises:
            ConfigurationError: If the parent is not resolved yet
            RemoteOperationError: If the lookup fails (status becomes ERROR)
        """
        module = self.module
        self._transition(Status.LOADING)
        try:
            raw = module.fetch_remote(self.name, self.resource_group)
        except Exception as e:
            self._fail(e)
            raise
        if raw is None:
            self._transition(Status.NOT_FOUND, remote=UNRESOLVED)
        else:
            self._transition(Status.ACTIVE, remote=Resolved(raw))
        return self

    def delete(self) -> None:
        """Delete this resource through its module."""
        self.module.delete(self._id)

    def update(self) -> "Draft":
        """Start an update draft for this resource."""
        return self.module.new_draft_for_update(self)

    def do_modify(self, action: Callable[[Any], Any], status: Status = Status.UPDATING) -> Any:
        """Run a remote mutation against this resource's SDK model.

        The resource stays in `status` while `action` runs and is refreshed
        from Azure afterwards.

        Raises:
            RemoteOperationError: If `action` or the refresh fails (status becomes ERROR)
        """
        remote = self.remote
        if remote is None:
            raise ConfigurationError(f"Resource '{self._id}' is not loaded")
        self._transition(status)
        try:
            result = action(remote)
            raw = self.module.fetch_remote(self.name, self.resource_group)
        except ToolkitError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = RemoteOperationError(f"Failed to modify '{self.name}': {e}", cause=e)
            self._fail(error)
            raise error from e
        if raw is None:
            gone = RemoteOperationError(f"Resource '{self.name}' disappeared after modification")
            self._transition(Status.ERROR, remote=UNRESOLVED, error=gone)
            raise gone
        self._transition(Status.ACTIVE, remote=Resolved(raw))
        return result

    def get_sub_modules(self) -> list["ResourceModule"]:
        """Child modules of this resource (empty unless HAS_SUB_MODULES)."""
        if not self.has_capability(Capability.HAS_SUB_MODULES):
            return []
        with self._lock:
            if self._sub_modules is None:
                self._sub_modules = list(self.module.adapter.get_sub_modules(self))
            return list(self._sub_modules)

    def sub_module(self, name: str) -> "ResourceModule":
        """Child module by name ("slots", "linkers", ...).

        Raises:
            ConfigurationError: If no such sub-module exists
        """
        for module in self.get_sub_modules():
            if module.name.lower() == name.lower():
                return module
        raise ConfigurationError(f"Resource '{self.name}' has no sub-module '{name}'")

    def _transition(
        self,
        status: Status,
        remote: RemoteState = _KEEP,
        local: dict[str, Any] | None = _KEEP,
        error: BaseException | None = None,
    ) -> None:
        with self._lock:
            check_transition(self._status, status)
            logger.debug(f"{self._id}: {self._status} -> {status}")
            self._status = status
            if remote is not _KEEP:
                self._remote = remote
            if local is not _KEEP:
                self._local = dict(local) if local is not None else None
            self._error = error

    def _fail(self, error: BaseException) -> None:
        with self._lock:
            if self._status == Status.ERROR:
                self._error = error
            else:
                self._transition(Status.ERROR, error=error)

    def _sync_remote(self, remote: RemoteState) -> None:
        """Take fresher remote state from a listing unless a mutation is in flight."""
        with self._lock:
            if self._status.is_transitional or self._status == Status.DELETED:
                return
            self._remote = remote
            self._status = Status.ACTIVE if isinstance(remote, Resolved) else Status.NOT_FOUND
            self._error = None

    def __repr__(self) -> str:
        return f"Resource({self._id}, status={self.status})"


def require_capability(resource: Resource, capability: Capability) -> None:
    """Raise InvariantViolation if the resource kind lacks a capability."""
    if not resource.has_capability(capability):
        raise InvariantViolation(f"Resource '{resource.name}' is not {capability}")


__all__ = ["Resource", "ResourceSnapshot", "require_capability"]
