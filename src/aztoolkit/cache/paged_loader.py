"""Paged Remote Loader - lazy page sequences from Azure listings.

Philosophy:
- Fresh generator per call, no shared cursor state
- An unresolved parent (no client yet) is "nothing to list", not an error
- Terminates when the provider stops returning a continuation token

Public API (the "studs"):
    Page: One page of raw SDK models plus its continuation token
    PagedRemoteLoader: Produces pages for a module from its adapter
    iter_pages: Turn an azure-core ItemPaged (or any iterable) into Pages
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from aztoolkit.exceptions import remote_call

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page:
    """One page of a remote listing.

    Attributes:
        items: Raw SDK models in provider order
        continuation_token: Token for the next page, None on the last page
    """

    items: list[Any] = field(default_factory=list)
    continuation_token: str | None = None


def iter_pages(pager: Iterable[Any], page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[Page]:
    """Yield Pages from an azure-core ItemPaged, or chunk a plain iterable.

    A continuation token seen twice means the provider is looping; iteration
    stops there instead of running forever.

    Args:
        pager: ItemPaged returned by an SDK list operation, or any iterable
        page_size: Chunk size used when `pager` has no native pages
    """
    by_page = getattr(pager, "by_page", None)
    if callable(by_page):
        page_iterator = by_page()
        seen_tokens: set[str] = set()
        for page in page_iterator:
            token = getattr(page_iterator, "continuation_token", None)
            yield Page(items=list(page), continuation_token=token)
            if not token:
                break
            if token in seen_tokens:
                logger.warning(f"Provider repeated continuation token, stopping pagination: {token}")
                break
            seen_tokens.add(token)
        return

    chunk: list[Any] = []
    for item in pager:
        chunk.append(item)
        if len(chunk) >= page_size:
            yield Page(items=chunk)
            chunk = []
    if chunk:
        yield Page(items=chunk)


class PagedRemoteLoader:
    """Loads pages of raw resources for one module.

    Args:
        get_client: Returns the provider client, or None while the parent is unresolved
        load_pages: Adapter operation returning an ItemPaged for (client, resource_group)
        description: Human-readable name used in logs and errors
        page_size: Page size for providers without native paging

    Example:
        >>> loader = PagedRemoteLoader(module.client, adapter.load_resource_pages_from_azure, "servers")
        >>> for page in loader.load_pages("my-rg"):
        ...     print(len(page.items))
    """

    def __init__(
        self,
        get_client: Callable[[], Any],
        load_pages: Callable[[Any, str | None], Iterable[Any]],
        description: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._get_client = get_client
        self._load_pages = load_pages
        self.description = description
        self.page_size = page_size

    def load_pages(self, resource_group: str | None = None) -> Iterator[Page]:
        """Lazily yield pages for the module, optionally scoped to a resource group.

        Yields nothing when the parent has no client yet.

        Raises:
            RemoteOperationError: If the provider fails while paging
        """
        client = self._get_client()
        if client is None:
            logger.warning(f"No client for {self.description} yet, nothing to list")
            return

        scope = resource_group or "all resource groups"
        with remote_call(f"list {self.description} in {scope}"):
            pager = self._load_pages(client, resource_group)
            count = 0
            for page in iter_pages(pager, self.page_size):
                count += 1
                logger.debug(f"Loaded page {count} of {self.description} ({len(page.items)} items)")
                yield page

    def load_all(self, resource_group: str | None = None) -> list[Any]:
        """Drain every page and return the raw items in provider order."""
        return [item for page in self.load_pages(resource_group) for item in page.items]


__all__ = ["DEFAULT_PAGE_SIZE", "Page", "PagedRemoteLoader", "iter_pages"]
