"""Cache Module - remote listing and in-memory caching for resource modules.

Philosophy:
- Lazy: nothing is loaded until a module is asked
- Single-flight: one remote load per (module, scope) at a time
- Thread-safe operations

Public API (the "studs"):
    From paged_loader:
        Page: One page of raw SDK models
        PagedRemoteLoader: Lazy, restartable page sequences per module
        iter_pages: Adapt azure-core ItemPaged to Pages

    From resource_cache:
        ResourceCache: Identifier -> entity store with scoped listing
        ALL_SCOPE: Scope key for module-wide listings
"""

from aztoolkit.cache.paged_loader import DEFAULT_PAGE_SIZE, Page, PagedRemoteLoader, iter_pages
from aztoolkit.cache.resource_cache import ALL_SCOPE, ResourceCache

__all__ = [
    "ALL_SCOPE",
    "DEFAULT_PAGE_SIZE",
    "Page",
    "PagedRemoteLoader",
    "ResourceCache",
    "iter_pages",
]
