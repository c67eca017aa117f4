# src/async_catalog/base/iterator.py
"""
Page iterators returned by `QueryBuilder.find()`.

An iterator wraps one page of items and knows how to fetch the adjacent pages
through closures supplied by the builder that produced it. Fetching never
mutates the iterator: `next()` and `prev()` return new iterators, so several
pages may be held at once.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

from .exceptions import PagingError

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 50

PageFetcher = Callable[[], Awaitable["PageIterator"]]


class PageIterator(ABC):
    """Base contract shared by the offset and cursor iterators."""

    def __init__(
        self,
        items: List[Any],
        origin_query: Any,
        fetch_next_page: Optional[PageFetcher] = None,
        fetch_prev_page: Optional[PageFetcher] = None,
        limit: Optional[int] = None,
    ):
        self._items = list(items)
        self._origin_query = origin_query
        self._fetch_next_page = fetch_next_page
        self._fetch_prev_page = fetch_prev_page
        self._limit = DEFAULT_LIMIT if limit is None else limit

    @property
    def items(self) -> List[Any]:
        return self._items

    @property
    def length(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def page_size(self) -> int:
        return self._limit

    @property
    def query(self) -> Any:
        """The builder whose execution produced this page."""
        return self._origin_query

    @abstractmethod
    def has_next(self) -> bool:
        """Whether a following page exists."""

    @abstractmethod
    def has_prev(self) -> bool:
        """Whether a preceding page exists."""

    async def next(self) -> "PageIterator":
        """
        Fetches the following page.

        Raises:
            PagingError: if `has_next()` is False.
        """
        if not self.has_next() or self._fetch_next_page is None:
            raise PagingError(
                f"{type(self).__name__} has no next page; check has_next() first."
            )
        log.debug(f"Fetching next page after {self!r}")
        return await self._fetch_next_page()

    async def prev(self) -> "PageIterator":
        """
        Fetches the preceding page.

        Raises:
            PagingError: if `has_prev()` is False.
        """
        if not self.has_prev() or self._fetch_prev_page is None:
            raise PagingError(
                f"{type(self).__name__} has no previous page; check has_prev() first."
            )
        log.debug(f"Fetching previous page before {self!r}")
        return await self._fetch_prev_page()


class OffsetPageIterator(PageIterator):
    """
    Iterator over offset-paged results.

    With `limit == 0` no page arithmetic is defined: `current_page` and
    `total_pages` are None and both directions report no adjacent page.
    """

    def __init__(
        self,
        items: List[Any],
        origin_query: Any,
        fetch_next_page: Optional[PageFetcher] = None,
        fetch_prev_page: Optional[PageFetcher] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        total_count: Optional[int] = None,
        too_many_to_count: bool = False,
    ):
        super().__init__(items, origin_query, fetch_next_page, fetch_prev_page, limit)
        self._offset = offset
        self._total_count = total_count
        self._too_many_to_count = bool(too_many_to_count)

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def current_page(self) -> Optional[int]:
        if self._limit == 0:
            return None
        return self._offset // self._limit

    @property
    def total_pages(self) -> Optional[int]:
        if self._too_many_to_count or self._limit == 0 or self._total_count is None:
            return None
        return math.ceil(self._total_count / self._limit)

    @property
    def total_count(self) -> Optional[int]:
        if self._too_many_to_count:
            return None
        return self._total_count

    @property
    def too_many_to_count(self) -> bool:
        return self._too_many_to_count

    def has_next(self) -> bool:
        total_pages = self.total_pages
        if self._limit == 0 or total_pages is None:
            return False
        return self.current_page < total_pages - 1

    def has_prev(self) -> bool:
        return self._limit != 0 and self.current_page > 0

    def __repr__(self) -> str:
        return (
            f"OffsetPageIterator(length={self.length}, offset={self._offset}, "
            f"limit={self._limit}, total_count={self.total_count!r})"
        )


def _present(cursor: Any) -> bool:
    # Cursors are opaque, so only None and the empty string mean "no page".
    return cursor is not None and cursor != ""


class CursorPageIterator(PageIterator):
    """Iterator over cursor-paged results. Cursor tokens are forwarded as-is."""

    _OFFSET_ONLY = frozenset({"offset", "current_page", "total_pages", "total_count", "too_many_to_count"})

    def __init__(
        self,
        items: List[Any],
        origin_query: Any,
        fetch_next_page: Optional[PageFetcher] = None,
        fetch_prev_page: Optional[PageFetcher] = None,
        limit: Optional[int] = None,
        next_cursor: Optional[Any] = None,
        prev_cursor: Optional[Any] = None,
    ):
        super().__init__(items, origin_query, fetch_next_page, fetch_prev_page, limit)
        self._next_cursor = next_cursor
        self._prev_cursor = prev_cursor

    @property
    def next_cursor(self) -> Optional[Any]:
        return self._next_cursor

    @property
    def prev_cursor(self) -> Optional[Any]:
        return self._prev_cursor

    def has_next(self) -> bool:
        return _present(self._next_cursor)

    def has_prev(self) -> bool:
        return _present(self._prev_cursor)

    def __getattr__(self, name: str) -> Any:
        if name in CursorPageIterator._OFFSET_ONLY:
            raise AttributeError(
                f"'{name}' is only available on offset-paged results; "
                f"this query uses cursor paging."
            )
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __repr__(self) -> str:
        return (
            f"CursorPageIterator(length={self.length}, limit={self._limit}, "
            f"next_cursor={self._next_cursor!r}, prev_cursor={self._prev_cursor!r})"
        )
