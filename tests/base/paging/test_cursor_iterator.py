# tests/base/paging/test_cursor_iterator.py

import pytest

from async_catalog.base.exceptions import PagingError
from async_catalog.base.iterator import CursorPageIterator, PageIterator


def test_cursor_presence_decides_navigation():
    page = CursorPageIterator([{"n": 1}], origin_query=None, limit=1, next_cursor="abc")
    assert page.has_next() is True
    assert page.has_prev() is False
    assert page.next_cursor == "abc"
    assert page.prev_cursor is None


def test_empty_cursor_counts_as_missing():
    page = CursorPageIterator([], origin_query=None, next_cursor="", prev_cursor="")
    assert page.has_next() is False
    assert page.has_prev() is False


@pytest.mark.parametrize(
    "name", ["offset", "current_page", "total_pages", "total_count", "too_many_to_count"]
)
def test_offset_only_accessors_are_unavailable(name):
    page = CursorPageIterator([], origin_query=None)
    with pytest.raises(AttributeError, match="only available on offset-paged results"):
        getattr(page, name)


def test_unknown_attribute():
    page = CursorPageIterator([], origin_query=None)
    assert not hasattr(page, "missing")


@pytest.mark.asyncio
async def test_cursor_round_trip():
    seen = []

    def fetcher(cursor, result):
        async def fetch():
            seen.append(cursor)
            return result

        return fetch

    second = CursorPageIterator([{"n": 2}], origin_query=None, limit=1, prev_cursor="xyz")
    first = CursorPageIterator(
        [{"n": 1}],
        origin_query=None,
        fetch_next_page=fetcher("abc", second),
        limit=1,
        next_cursor="abc",
    )

    assert await first.next() is second
    assert seen == ["abc"]
    with pytest.raises(PagingError):
        await second.next()
    with pytest.raises(PagingError):
        await second.prev()


def test_base_iterator_cannot_be_instantiated():
    with pytest.raises(TypeError):
        PageIterator([], origin_query=None)


def test_iterator_without_navigation_cannot_be_instantiated():
    class Incomplete(PageIterator):
        def has_next(self) -> bool:
            return False

    with pytest.raises(TypeError):
        Incomplete([], origin_query=None)
