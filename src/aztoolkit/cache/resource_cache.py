"""Resource Cache - per-module, thread-safe store of resource entities.

Philosophy:
- Identifier -> entity, shared by every caller of a module
- A listing scope (whole module or one resource group) loads all-or-nothing
- Single-flight: concurrent callers of the same scope or id share one remote load
- Invalidation bumps a generation so in-flight loads cannot resurrect stale data;
  evicting a deleted id fences just that id against loads already in flight

Public API (the "studs"):
    ResourceCache: The cache itself
    ALL_SCOPE: Scope key for module-wide listings
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from typing import TYPE_CHECKING, Any

from aztoolkit.models.status import Status
from aztoolkit.resource_id import ResourceId

if TYPE_CHECKING:
    from aztoolkit.resource import Resource

logger = logging.getLogger(__name__)

ALL_SCOPE = "*"

_HIDDEN = (Status.NOT_FOUND, Status.DELETED)


class _Flight:
    """One in-progress load that other callers can wait on."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: BaseException | None = None

    def wait(self) -> Any:
        self.done.wait()
        if self.error is not None:
            raise self.error
        return self.result


def _scope_key(resource_group: str | None) -> str:
    return resource_group.lower() if resource_group else ALL_SCOPE


class ResourceCache:
    """Cache of resource entities for one module.

    Entries include "not found" markers (status NOT_FOUND) so that repeated
    point lookups of a missing resource do not go back to Azure; listings
    never return them.

    Thread-safety: All state is guarded by one re-entrant lock; remote loads
    run outside the lock.

    Example:
        >>> cache = ResourceCache("servers", loader=module.load_scope)
        >>> cache.list("my-rg")   # loads once
        >>> cache.list("my-rg")   # served from memory
        >>> cache.invalidate()    # next list reloads
    """

    def __init__(self, name: str, loader: Callable[[str | None], list["Resource"]]):
        """Initialize resource cache.

        Args:
            name: Module description for logs
            loader: Fully loads one scope (None = whole module) and returns
                entities in provider order
        """
        self.name = name
        self._loader = loader
        self._lock = threading.RLock()
        self._entries: dict[ResourceId, Resource] = {}
        self._scopes: dict[str, list[ResourceId]] = {}
        self._in_flight: dict[Hashable, _Flight] = {}
        self._generation = 0
        # id -> eviction sequence number, kept while any load is in flight
        self._evicted: dict[ResourceId, int] = {}
        self._evictions = 0

    def get(self, resource_id: ResourceId) -> "Resource | None":
        """Return the cached entry (possibly a NOT_FOUND marker), or None on miss."""
        with self._lock:
            entry = self._entries.get(resource_id)
        if entry is None:
            logger.debug(f"Cache miss: {resource_id}")
        return entry

    def put(self, resource: "Resource") -> None:
        """Insert or replace an entry and add it to every loaded scope it belongs to."""
        with self._lock:
            self._put_locked(resource)

    def list(self, resource_group: str | None = None) -> list["Resource"]:
        """List entities of a scope, loading the scope first if needed.

        A scope already covered by the module-wide listing is served from it.

        Raises:
            RemoteOperationError: If the load fails (nothing is cached then)
        """
        cached = self._cached_list(resource_group)
        if cached is not None:
            return cached

        def work() -> list["Resource"]:
            # a flight that finished since the check above may have filled the scope
            cached = self._cached_list(resource_group)
            return cached if cached is not None else self._populate(resource_group)

        return self._single_flight(("list", _scope_key(resource_group)), work)

    def load_one(
        self, resource_id: ResourceId, fetch: Callable[[], "Resource | None"]
    ) -> "Resource | None":
        """Return the cached entry for an id, fetching it once on miss.

        Args:
            resource_id: Id to look up
            fetch: Point load returning an entity (ACTIVE or NOT_FOUND marker),
                or None when nothing can be loaded yet (not cached)
        """
        entry = self.get(resource_id)
        if entry is not None:
            return entry

        def work() -> "Resource | None":
            with self._lock:
                generation = self._generation
                evictions = self._evictions
                cached = self._entries.get(resource_id)
            if cached is not None:
                return cached
            resource = fetch()
            if resource is not None:
                with self._lock:
                    if self._is_stale(resource_id, generation, evictions):
                        logger.debug(f"Not caching {resource_id}, evicted while loading")
                    elif resource_id not in self._entries:
                        self._put_locked(resource)
                    resource = self._entries.get(resource_id, resource)
            return resource

        return self._single_flight(("get", resource_id), work)

    def invalidate(self, resource_id: ResourceId | None = None) -> None:
        """Drop one entry, or everything when no id is given."""
        with self._lock:
            if resource_id is None:
                self._entries.clear()
                self._scopes.clear()
                self._generation += 1
                self._evicted.clear()
                logger.debug(f"Cache invalidated: {self.name}")
                return
            self._drop_locked(resource_id)
            logger.debug(f"Cache invalidated: {resource_id}")

    def evict(self, resource_id: ResourceId) -> None:
        """Drop an entry for good: loads already in flight will not store it again.

        Used after a delete, where a listing fetched before the delete would
        otherwise bring the resource back.
        """
        with self._lock:
            self._drop_locked(resource_id)
            if self._in_flight:
                self._evictions += 1
                self._evicted[resource_id] = self._evictions
            logger.debug(f"Cache evicted: {resource_id}")

    def is_loaded(self, resource_group: str | None = None) -> bool:
        with self._lock:
            return self._loaded_ids(resource_group) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _single_flight(self, key: Hashable, work: Callable[[], Any]) -> Any:
        with self._lock:
            flight = self._in_flight.get(key)
            leader = flight is None
            if flight is None:
                flight = _Flight()
                self._in_flight[key] = flight

        if not leader:
            logger.debug(f"Joining in-flight load {key} of {self.name}")
            return flight.wait()

        try:
            flight.result = work()
            return flight.result
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                self._in_flight.pop(key, None)
                if not self._in_flight:
                    self._evicted.clear()
            flight.done.set()

    def _populate(self, resource_group: str | None) -> list["Resource"]:
        with self._lock:
            generation = self._generation
            evictions = self._evictions
        resources = self._loader(resource_group)

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding {self.name} load invalidated while in flight")
                return [r for r in resources if r.status not in _HIDDEN]
            ids: list[ResourceId] = []
            for resource in resources:
                if self._is_stale(resource.id, generation, evictions):
                    # keep an entry put back after the eviction, drop the loaded copy
                    if resource.id in self._entries and resource.id not in ids:
                        ids.append(resource.id)
                    continue
                existing = self._entries.get(resource.id)
                if existing is not None and existing is not resource:
                    existing._sync_remote(resource.remote_state)
                else:
                    self._entries[resource.id] = resource
                if resource.id not in ids:
                    ids.append(resource.id)

            self._scopes[_scope_key(resource_group)] = ids
            logger.debug(f"Cached {len(ids)} {self.name} ({_scope_key(resource_group)})")
            return self._visible(ids)

    def _is_stale(self, resource_id: ResourceId, generation: int, evictions: int) -> bool:
        return generation != self._generation or self._evicted.get(resource_id, 0) > evictions

    def _cached_list(self, resource_group: str | None) -> list["Resource"] | None:
        with self._lock:
            ids = self._loaded_ids(resource_group)
            if ids is None:
                return None
            logger.debug(f"Cache hit: {self.name} list ({_scope_key(resource_group)})")
            return self._visible(ids)

    def _loaded_ids(self, resource_group: str | None) -> list[ResourceId] | None:
        if ALL_SCOPE in self._scopes:
            ids = self._scopes[ALL_SCOPE]
            if resource_group is None:
                return list(ids)
            return [i for i in ids if _scope_key(i.resource_group) == _scope_key(resource_group)]
        ids = self._scopes.get(_scope_key(resource_group)) if resource_group else None
        return list(ids) if ids is not None else None

    def _visible(self, ids: list[ResourceId]) -> list["Resource"]:
        entries = (self._entries.get(i) for i in ids)
        return [e for e in entries if e is not None and e.status not in _HIDDEN]

    def _drop_locked(self, resource_id: ResourceId) -> None:
        self._entries.pop(resource_id, None)
        for ids in self._scopes.values():
            if resource_id in ids:
                ids.remove(resource_id)

    def _put_locked(self, resource: "Resource") -> None:
        self._entries[resource.id] = resource
        for scope, ids in self._scopes.items():
            if resource.id in ids:
                continue
            if scope == ALL_SCOPE or scope == _scope_key(resource.resource_group):
                ids.append(resource.id)


__all__ = ["ALL_SCOPE", "ResourceCache"]
