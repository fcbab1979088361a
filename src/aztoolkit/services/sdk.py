"""Small helpers shared by the SDK-backed adapters."""

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from azure.core.exceptions import ResourceNotFoundError

from aztoolkit.resource_id import ResourceId

logger = logging.getLogger(__name__)


def get_or_none(operation: Callable[..., Any], *args: Any) -> Any:
    """Run an SDK point lookup, mapping "not found" to None."""
    try:
        return operation(*args)
    except ResourceNotFoundError:
        logger.debug(f"Not found: {getattr(operation, '__name__', 'get')}{args}")
        return None


def resource_group_of(raw: Any) -> str | None:
    """Resource group of a raw SDK model, parsed from its id."""
    raw_id = getattr(raw, "id", None)
    if not raw_id:
        return None
    return ResourceId.parse(raw_id).resource_group


def drop_none(**fields: Any) -> dict[str, Any]:
    """Keyword arguments without the None values (unset draft fields)."""
    return {k: v for k, v in fields.items() if v is not None}


class _FilteredPages:
    """Page iterator of an ItemPaged with some items dropped from every page."""

    def __init__(self, pages: Any, keep: Callable[[Any], bool]):
        self._pages = pages
        self._keep = keep

    @property
    def continuation_token(self) -> str | None:
        return getattr(self._pages, "continuation_token", None)

    def __iter__(self) -> "_FilteredPages":
        return self

    def __next__(self) -> list[Any]:
        return [item for item in next(self._pages) if self._keep(item)]


class FilteredPager:
    """Wrap an SDK pager, dropping items that fail `keep`, without losing its paging.

    Example:
        >>> FilteredPager(client.web_apps.list(), lambda site: "functionapp" not in site.kind)
    """

    def __init__(self, pager: Iterable[Any], keep: Callable[[Any], bool]):
        self._pager = pager
        self._keep = keep

    def by_page(self) -> Iterator[list[Any]]:
        by_page = getattr(self._pager, "by_page", None)
        if callable(by_page):
            return _FilteredPages(by_page(), self._keep)
        return iter([[item for item in self._pager if self._keep(item)]])

    def __iter__(self) -> Iterator[Any]:
        return (item for item in self._pager if self._keep(item))
