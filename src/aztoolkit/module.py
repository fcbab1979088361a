"""Resource Module - generic management unit for one kind of resource.

Philosophy:
- One module per (resource kind, parent); the module owns its cache
- All remote work goes through the adapter; the module owns caching,
  status transitions and error surfacing
- Listing an unresolved parent yields nothing; mutating it is an error
- Mutation failures propagate and leave an ERROR-tagged entity behind
- No cascade: deleting a resource does not touch its sub-modules

Public API:
    ResourceModule: list / get / delete / create_or_update / get_sub_modules
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable
from typing import Any

from aztoolkit.adapter import ResourceAdapter, ResourceParent
from aztoolkit.cache.paged_loader import DEFAULT_PAGE_SIZE, PagedRemoteLoader
from aztoolkit.cache.resource_cache import ResourceCache
from aztoolkit.draft import Draft
from aztoolkit.exceptions import (
    ConfigurationError,
    InvariantViolation,
    ToolkitError,
    remote_call,
)
from aztoolkit.models.capabilities import Capability
from aztoolkit.models.remote_state import DELETED, Resolved
from aztoolkit.models.status import Status
from aztoolkit.resource import Resource, require_capability
from aztoolkit.resource_id import ResourceId

logger = logging.getLogger(__name__)


class ResourceModule:
    """Lists, loads, creates, updates and deletes resources of one kind.

    Example:
        >>> servers = postgres.servers("sub-id")
        >>> [s.name for s in servers.list()]
        ['pg1', 'pg2']
        >>> servers.get("pg1", "my-rg").status
        <Status.ACTIVE: 'active'>
    """

    def __init__(
        self,
        adapter: ResourceAdapter,
        parent: ResourceParent,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """Initialize a module.

        Args:
            adapter: Resource-kind specific operations
            parent: Service subscription or resource this module hangs off
                (a resource owns its sub-modules and is held weakly;
                a subscription is held for the life of the module)
            page_size: Page size for listings without native paging
        """
        self.adapter = adapter
        self._parent_ref: Callable[[], ResourceParent | None]
        if isinstance(parent, Resource):
            self._parent_ref = weakref.ref(parent)
        else:
            self._parent_ref = lambda: parent
        self._parent_id = parent.id
        self._parent_group = parent.resource_group
        self.module_path = self._parent_id.child_module_path(adapter.module_segment)
        self.name = self.module_path.rsplit("/", 1)[-1]
        self._loader = PagedRemoteLoader(
            self.get_client,
            adapter.load_resource_pages_from_azure,
            adapter.resource_type_name,
            page_size=page_size,
        )
        self._cache = ResourceCache(adapter.resource_type_name, self._load_scope)

    @property
    def parent(self) -> ResourceParent:
        parent = self._parent_ref()
        if parent is None:
            raise ConfigurationError(f"Parent of module '{self.module_path}' no longer exists")
        return parent

    @property
    def resource_type_name(self) -> str:
        return self.adapter.resource_type_name

    @property
    def subscription_id(self) -> str:
        return self._parent_id.subscription_id

    @property
    def page_size(self) -> int:
        return self._loader.page_size

    @property
    def cache(self) -> ResourceCache:
        return self._cache

    def get_client(self) -> Any:
        """Provider client for this module, None while the parent is unresolved."""
        parent = self._parent_ref()
        if parent is None:
            return None
        return self.adapter.get_client(parent)

    def resource_id(self, name: str, resource_group: str | None) -> ResourceId:
        """Id of a resource of this module."""
        group = self._parent_group if self._parent_group is not None else resource_group
        return ResourceId(self.subscription_id, group, self.module_path, name)

    def list(self, resource_group: str | None = None) -> list[Resource]:
        """List resources, loading them from Azure on first use (or after invalidate).

        Args:
            resource_group: Only list this resource group (None = everything
                visible to the parent)

        Raises:
            RemoteOperationError: If Azure fails while listing
        """
        if resource_group is not None:
            self._check_group(resource_group)
        return self._cache.list(resource_group)

    def list_by_resource_group(self, resource_group: str) -> list[Resource]:
        return self.list(resource_group)

    def get(self, name: str, resource_group: str | None = None) -> Resource | None:
        """Get a resource by name.

        On a cache miss this does a point lookup in Azure, not a full
        listing. A resource that does not exist is remembered as such until
        the module is invalidated.

        Without a resource group (and none inherited from the parent) the
        module-wide listing is searched by name instead.

        Returns:
            The resource, or None when it does not exist or the parent is unresolved
        """
        group = self._effective_group(resource_group)
        if group is None:
            return next((r for r in self.list() if r.name.lower() == name.lower()), None)

        resource_id = self.resource_id(name, group)
        entry = self._cache.load_one(resource_id, lambda: self._load_one(name, group))
        if entry is None or entry.status in (Status.NOT_FOUND, Status.DELETED):
            return None
        return entry

    def get_by_id(self, resource_id: ResourceId | str) -> Resource | None:
        """Get a resource of this module by its full id."""
        rid = ResourceId.parse(resource_id) if isinstance(resource_id, str) else resource_id
        if rid.module_path.lower() != self.module_path.lower():
            raise InvariantViolation(f"'{rid}' does not belong to module '{self.module_path}'")
        return self.get(rid.name, rid.resource_group)

    def exists(self, name: str, resource_group: str | None = None) -> bool:
        return self.get(name, resource_group) is not None

    def fetch_remote(self, name: str, resource_group: str | None) -> Any:
        """Point lookup of a raw resource in Azure, bypassing the cache.

        Raises:
            ConfigurationError: If the parent is not resolved yet
            RemoteOperationError: If the lookup fails
        """
        client = self._require_client()
        group = self._effective_group(resource_group)
        with remote_call(f"load {self.resource_type_name} '{name}'"):
            return self.adapter.load_resource_from_azure(client, name, group)

    def delete(self, resource_id: ResourceId | str) -> bool:
        """Delete a resource.

        The entity moves to DELETING, then DELETED (and is evicted from the
        cache) on success. On failure it is left in the cache with status
        ERROR and the error attached, and the error is raised.

        Returns:
            True if a resource was deleted, False if it did not exist

        Raises:
            ConfigurationError: If the parent is not resolved yet
            InvariantViolation: If resources of this kind are not deletable
            RemoteOperationError: If Azure fails to delete
        """
        rid = ResourceId.parse(resource_id) if isinstance(resource_id, str) else resource_id
        client = self._require_client()
        entity = self._cache.get(rid)
        if entity is None or entity.status in (Status.NOT_FOUND, Status.DELETED):
            entity = self.get(rid.name, rid.resource_group)
        if entity is None:
            logger.debug(f"Nothing to delete: {rid}")
            return False
        require_capability(entity, Capability.DELETABLE)

        entity._transition(Status.DELETING)
        logger.info(f"Deleting {self.resource_type_name} '{rid.name}'")
        try:
            with remote_call(f"delete {self.resource_type_name} '{rid.name}'"):
                self.adapter.delete_resource_from_azure(client, entity.id)
        except ToolkitError as e:
            entity._fail(e)
            self._cache.put(entity)
            raise

        entity._transition(Status.DELETED, remote=DELETED)
        self._cache.evict(entity.id)
        logger.info(f"Deleted {self.resource_type_name} '{rid.name}'")
        return True

    def new_draft_for_create(self, name: str, resource_group: str | None = None) -> Draft:
        """Start a draft for a new resource.

        Raises:
            ConfigurationError: If a required resource group is missing
            InvariantViolation: If the resource group is blank
        """
        group = self._creation_group(name, resource_group)
        return self.adapter.new_draft_for_create(self, name, group)

    def new_draft_for_update(self, origin: Resource) -> Draft:
        require_capability(origin, Capability.UPDATABLE)
        return self.adapter.new_draft_for_update(origin)

    def create_or_update(self, draft: Draft) -> Resource:
        """Commit a draft: create when it has no origin, update otherwise.

        On success the cached entity carries the fresh remote state with
        status ACTIVE. On failure it is ERROR with the error attached and
        the error is raised; a failed create leaves nothing in the cache.

        Raises:
            ConfigurationError: If the parent is not resolved yet, or a
                create has no resource group where one is required
            InvariantViolation: If the draft was already committed or its
                resource group is blank
            RemoteOperationError: If Azure rejects the change
        """
        if draft.module is not self:
            raise InvariantViolation(f"Draft '{draft.name}' belongs to another module")
        draft._begin_commit()
        succeeded = False
        try:
            client = self._require_client()
            if draft.origin is None:
                entity = self._create(client, draft)
            else:
                entity = self._update(client, draft, draft.origin)
            succeeded = True
            return entity
        finally:
            draft._end_commit(succeeded)

    def get_sub_modules(self, name: str, resource_group: str | None = None) -> list["ResourceModule"]:
        """Child modules of one resource of this module (empty if it does not exist)."""
        resource = self.get(name, resource_group)
        return resource.get_sub_modules() if resource is not None else []

    def invalidate(self, resource_id: ResourceId | None = None) -> None:
        """Forget cached state (everything, or one resource)."""
        self._cache.invalidate(resource_id)

    def _create(self, client: Any, draft: Draft) -> Resource:
        self._creation_group(draft.name, draft.resource_group)
        entity = self.adapter.new_placeholder(self, draft.name, draft.resource_group)
        entity._transition(Status.CREATING, local=draft.fields)
        draft.resource = entity
        logger.info(f"Creating {self.resource_type_name} '{draft.name}'")
        try:
            with remote_call(f"create {self.resource_type_name} '{draft.name}'"):
                raw = self.adapter.create_resource_in_azure(client, draft)
        except ToolkitError as e:
            entity._fail(e)
            self._cache.invalidate(entity.id)
            raise

        entity._transition(Status.ACTIVE, remote=Resolved(raw), local=None)
        self._cache.put(entity)
        logger.info(f"Created {self.resource_type_name} '{draft.name}'")
        return entity

    def _update(self, client: Any, draft: Draft, origin: Resource) -> Resource:
        entity = self._cache.get(origin.id) or origin
        entity._transition(Status.UPDATING, local=draft.fields)
        draft.resource = entity
        logger.info(f"Updating {self.resource_type_name} '{draft.name}'")
        try:
            with remote_call(f"update {self.resource_type_name} '{draft.name}'"):
                raw = self.adapter.update_resource_in_azure(client, draft)
        except ToolkitError as e:
            entity._fail(e)
            self._cache.put(entity)
            raise

        entity._transition(Status.ACTIVE, remote=Resolved(raw), local=None)
        self._cache.put(entity)
        logger.info(f"Updated {self.resource_type_name} '{draft.name}'")
        return entity

    def _load_scope(self, resource_group: str | None) -> list[Resource]:
        return [self.adapter.new_resource(self, raw) for raw in self._loader.load_all(resource_group)]

    def _load_one(self, name: str, resource_group: str) -> Resource | None:
        if self.get_client() is None:
            logger.debug(f"Parent of {self.resource_type_name} '{name}' not resolved, skipping lookup")
            return None
        entity = self.adapter.new_placeholder(self, name, resource_group)
        entity.refresh()
        if entity.status == Status.NOT_FOUND:
            logger.debug(f"{self.resource_type_name} '{name}' not found in '{resource_group}'")
        return entity

    def _require_client(self) -> Any:
        client = self.get_client()
        if client is None:
            raise ConfigurationError(
                f"Cannot use {self.resource_type_name} module before its parent "
                f"'{self._parent_id}' is resolved"
            )
        return client

    def _effective_group(self, resource_group: str | None) -> str | None:
        if self._parent_group is not None:
            return self._parent_group
        if resource_group is not None:
            self._check_group(resource_group)
        return resource_group

    def _creation_group(self, name: str, resource_group: str | None) -> str | None:
        group = self._effective_group(resource_group)
        if group is None and self.adapter.requires_resource_group:
            raise ConfigurationError(
                f"'Resource group' is required to create {self.resource_type_name} '{name}'"
            )
        return group

    def _check_group(self, resource_group: str) -> None:
        if not resource_group.strip():
            raise InvariantViolation(f"Resource group of {self.resource_type_name} cannot be blank")

    def __repr__(self) -> str:
        return f"ResourceModule({self._parent_id}/{self.module_path})"


__all__ = ["ResourceModule"]
