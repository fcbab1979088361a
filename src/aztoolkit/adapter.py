"""Contracts between the generic module framework and service adapters.

The framework (ResourceModule, ResourceCache, Resource, Draft) depends only
on these protocols. Each resource kind (PostgreSQL server, Service Bus
namespace, web app, ...) implements ResourceAdapter independently.

Public API:
    ResourceParent: What a module needs from its parent (subscription or resource)
    ResourceAdapter: Per-resource-kind operations against Azure
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

from aztoolkit.models.capabilities import Capability
from aztoolkit.resource_id import ResourceId

if TYPE_CHECKING:
    from aztoolkit.draft import Draft
    from aztoolkit.module import ResourceModule
    from aztoolkit.resource import Resource


class ResourceParent(Protocol):
    """Parent node of a module: a service subscription or a resource."""

    @property
    def id(self) -> ResourceId: ...

    @property
    def resource_group(self) -> str | None: ...

    @property
    def remote(self) -> Any:
        """Provider handle of the parent, None while unresolved."""
        ...


class ResourceAdapter(Protocol):
    """Operations a resource kind provides to its module.

    Attributes:
        module_segment: Path segment(s) of the module below its parent, e.g.
            "providers/Microsoft.DBforPostgreSQL/flexibleServers" or "slots"
        resource_type_name: Human-readable type for messages
        requires_resource_group: Whether create/point lookups need a resource group
        capabilities: Capabilities of resources of this kind
    """

    module_segment: str
    resource_type_name: str
    requires_resource_group: bool
    capabilities: frozenset[Capability]

    def get_client(self, parent: ResourceParent) -> Any:
        """Return the provider client for the parent, None while it is unresolved."""
        ...

    def load_resource_pages_from_azure(self, client: Any, resource_group: str | None) -> Iterable[Any]:
        """Return a (lazily paged) listing of raw resources."""
        ...

    def load_resource_from_azure(self, client: Any, name: str, resource_group: str | None) -> Any:
        """Point lookup; return None when the resource does not exist."""
        ...

    def delete_resource_from_azure(self, client: Any, resource_id: ResourceId) -> None: ...

    def create_resource_in_azure(self, client: Any, draft: "Draft") -> Any:
        """Create the resource described by the draft and return the raw result."""
        ...

    def update_resource_in_azure(self, client: Any, draft: "Draft") -> Any:
        """Apply the draft's changes to its origin and return the raw result."""
        ...

    def new_draft_for_create(self, module: "ResourceModule", name: str, resource_group: str | None) -> "Draft": ...

    def new_draft_for_update(self, origin: "Resource") -> "Draft": ...

    def new_resource(self, module: "ResourceModule", raw: Any) -> "Resource":
        """Wrap a raw SDK model into an entity."""
        ...

    def new_placeholder(self, module: "ResourceModule", name: str, resource_group: str | None) -> "Resource":
        """Entity for a not-yet-loaded reference."""
        ...

    def get_sub_modules(self, resource: "Resource") -> list["ResourceModule"]: ...


__all__ = ["ResourceAdapter", "ResourceParent"]
