# tests/base/query/test_query_builder.py

import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from async_catalog.base.exceptions import (
    CatalogError,
    CatalogRequestError,
    FilterValidationError,
)
from async_catalog.base.iterator import CursorPageIterator, OffsetPageIterator
from async_catalog.base.query import (
    Paging,
    PagingMethod,
    QueryBuilder,
    wrap_with_query_builder,
)


def _empty_page(request):
    return {"items": [], "pagingMetadata": {"count": 0, "offset": 0, "total": 0}}


# --- build_query ---
def test_empty_builder_query(qb: QueryBuilder):
    assert qb.build_query() == {"paging": {"limit": 50, "offset": 0}}


def test_full_query(qb: QueryBuilder):
    query = (
        qb.eq("brand", "acme")
        .ascending("name")
        .descending("price")
        .skip(20)
        .limit(10)
        .build_query()
    )
    assert query == {
        "filter": '{"brand":"acme"}',
        "sort": [
            {"fieldName": "name", "order": "ASC"},
            {"fieldName": "price", "order": "DESC"},
        ],
        "paging": {"limit": 10, "offset": 20},
    }


def test_filter_is_serialized_with_iso_dates(qb: QueryBuilder):
    query = qb.eq("d", datetime(2024, 1, 2, 3, 4, 5)).build_query()
    assert query["filter"] == '{"d":"2024-01-02T03:04:05Z"}'


def test_filter_serialization_round_trips(qb: QueryBuilder):
    builder = qb.eq("a", 1).or_(QueryBuilder().in_("b", "x", "y"))
    assert json.loads(builder.build_query()["filter"]) == builder.get_filter_model()


def test_build_query_raises_recorded_failures(qb: QueryBuilder):
    with pytest.raises(FilterValidationError):
        qb.contains("name", 1).build_query()


def test_sort_entries_accumulate_in_call_order(qb: QueryBuilder):
    builder = qb.descending("a", "b").ascending("c")
    assert builder.sort == (
        {"fieldName": "a", "order": "DESC"},
        {"fieldName": "b", "order": "DESC"},
        {"fieldName": "c", "order": "ASC"},
    )


def test_invalid_sort_field_is_deferred(qb: QueryBuilder):
    builder = qb.ascending("a", 3)
    assert builder.sort == ()
    with pytest.raises(FilterValidationError) as exc_info:
        builder.build_query()
    assert str(exc_info.value) == "Invalid .ascending field value [3]. .ascending field must be a String."


# --- Paging ---
@pytest.mark.parametrize("value", [-1, 1.5, "3", True, None])
def test_skip_rejects_invalid_offsets(qb: QueryBuilder, value):
    with pytest.raises(ValueError):
        qb.skip(value)


@pytest.mark.parametrize("value", [-5, 2.0, "10", False])
def test_limit_rejects_invalid_limits(qb: QueryBuilder, value):
    with pytest.raises(ValueError):
        qb.limit(value)


def test_skip_and_limit_overwrite(qb: QueryBuilder):
    builder = qb.skip(10).skip(3).limit(7).limit(0)
    assert builder.paging == Paging(limit=0, offset=3)
    assert builder.build_query()["paging"] == {"limit": 0, "offset": 3}


def test_default_page_size(qb: QueryBuilder):
    assert qb.page_limit == 50


# --- build ---
def test_build_applies_request_transformer():
    builder = QueryBuilder(request_transformer=lambda q: {"query": q}).eq("a", 1)
    assert builder.build() == {
        "query": {"filter": '{"a":1}', "paging": {"limit": 50, "offset": 0}}
    }


def test_build_is_repeatable(qb: QueryBuilder):
    builder = qb.eq("a", 1).limit(5)
    assert builder.build() == builder.build()


def test_cursor_first_page_carries_filter_and_sort():
    builder = QueryBuilder(paging_method=PagingMethod.CURSOR).eq("a", 1).ascending("b").skip(9).limit(5)
    assert builder.build() == {
        "filter": '{"a":1}',
        "sort": [{"fieldName": "b", "order": "ASC"}],
        "cursorPaging": {"limit": 5},
    }


def test_cursor_later_pages_carry_only_the_cursor():
    builder = QueryBuilder(
        paging_method=PagingMethod.CURSOR, paging=Paging(limit=5, cursor="abc")
    ).eq("a", 1)
    assert builder.build() == {"cursorPaging": {"cursor": "abc", "limit": 5}}


# --- find ---
@pytest.mark.asyncio
async def test_find_without_executor(qb: QueryBuilder):
    with pytest.raises(CatalogError, match="has no request executor"):
        await qb.find()


@pytest.mark.asyncio
async def test_find_validates_before_calling_the_executor(recording_executor):
    executor = recording_executor(_empty_page)
    builder = QueryBuilder(executor=executor).gt("price", [1])
    with pytest.raises(FilterValidationError):
        await builder.find()
    assert executor.requests == []


@pytest.mark.asyncio
async def test_find_sends_the_built_request(recording_executor, offset_responder):
    executor = recording_executor(offset_responder(total=3))
    builder = QueryBuilder(executor=executor).eq("a", 1).limit(2)

    page = await builder.find()

    assert executor.requests == [builder.build()]
    assert isinstance(page, OffsetPageIterator)
    assert page.items == [{"n": 0}, {"n": 1}]
    assert page.query is builder


@pytest.mark.asyncio
async def test_find_accepts_a_synchronous_executor():
    builder = QueryBuilder(executor=lambda request: {"items": [{"x": 1}]})
    page = await builder.find()
    assert page.items == [{"x": 1}]
    assert page.total_count is None
    assert page.has_next() is False


@pytest.mark.asyncio
async def test_find_applies_response_transformer(recording_executor):
    executor = recording_executor(lambda request: {"products": [{"id": "p1"}], "metadata": {"total": 1}})
    builder = QueryBuilder(
        executor=executor,
        response_transformer=lambda raw: {
            "items": raw["products"],
            "pagingMetadata": raw["metadata"],
        },
    )
    page = await builder.find()
    assert page.items == [{"id": "p1"}]
    assert page.total_count == 1


@pytest.mark.asyncio
async def test_executor_errors_propagate_unchanged_without_transformer():
    async def failing(request):
        raise KeyError("boom")

    with pytest.raises(KeyError):
        await QueryBuilder(executor=failing).find()


@pytest.mark.asyncio
async def test_executor_errors_pass_through_the_error_transformer():
    async def failing(request):
        raise RuntimeError("backend down")

    builder = QueryBuilder(
        executor=failing,
        error_transformer=lambda e: CatalogRequestError(f"wrapped: {e}", status_code=503),
    )
    with pytest.raises(CatalogRequestError) as exc_info:
        await builder.find()

    assert str(exc_info.value) == "wrapped: backend down"
    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_next_and_prev_refetch_with_adjusted_offsets(recording_executor, offset_responder):
    executor = recording_executor(offset_responder(total=10))
    first = await QueryBuilder(executor=executor).limit(4).find()

    second = await first.next()
    third = await second.next()
    back = await third.prev()

    assert [r["paging"] for r in executor.requests] == [
        {"limit": 4, "offset": 0},
        {"limit": 4, "offset": 4},
        {"limit": 4, "offset": 8},
        {"limit": 4, "offset": 4},
    ]
    assert third.items == [{"n": 8}, {"n": 9}]
    assert third.has_next() is False
    assert back.current_page == 1
    # Fetching never changes the page it started from.
    assert first.items == [{"n": 0}, {"n": 1}, {"n": 2}, {"n": 3}]


@pytest.mark.asyncio
async def test_cursor_find_follows_cursors(recording_executor):
    def respond(request):
        cursor = request["cursorPaging"].get("cursor")
        if cursor is None:
            return {"items": [{"n": 1}], "pagingMetadata": {"cursors": {"next": "abc"}}}
        return {"items": [{"n": 2}], "pagingMetadata": {"cursors": {"prev": "start"}}}

    executor = recording_executor(respond)
    builder = QueryBuilder(executor=executor, paging_method=PagingMethod.CURSOR).eq("a", 1).limit(1)

    first = await builder.find()
    second = await first.next()

    assert isinstance(first, CursorPageIterator)
    assert executor.requests == [
        {"filter": '{"a":1}', "cursorPaging": {"limit": 1}},
        {"cursorPaging": {"cursor": "abc", "limit": 1}},
    ]
    assert second.items == [{"n": 2}]
    assert second.has_next() is False
    assert second.has_prev() is True


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [123, 0, {"t": "abc"}, ["page", 2]])
async def test_cursor_tokens_are_forwarded_as_received(recording_executor, token):
    def respond(request):
        if "cursor" not in request["cursorPaging"]:
            return {"items": [{"n": 1}], "pagingMetadata": {"cursors": {"next": token}}}
        return {"items": [{"n": 2}], "pagingMetadata": {"cursors": {"prev": token}}}

    executor = recording_executor(respond)
    first = await QueryBuilder(executor=executor, paging_method=PagingMethod.CURSOR).limit(1).find()

    assert first.next_cursor == token
    assert first.has_next() is True

    second = await first.next()
    assert executor.requests[-1] == {"cursorPaging": {"cursor": token, "limit": 1}}
    assert second.prev_cursor == token
    assert second.has_prev() is True


@pytest.mark.asyncio
async def test_items_are_passed_through_untouched():
    builder = QueryBuilder(executor=lambda request: {"items": ["a", "b", 3, None]})
    page = await builder.find()
    assert page.items == ["a", "b", 3, None]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        {"items": "oops"},
        {"items": 5},
        {"items": [], "pagingMetadata": {"total": "many"}},
        {"items": [], "pagingMetadata": {"cursors": "abc"}},
        ["not", "an", "envelope"],
    ],
)
async def test_malformed_envelope_raises_catalog_error(raw):
    builder = QueryBuilder(executor=lambda request: raw, collection_name="products")
    with pytest.raises(CatalogError, match="Malformed response envelope for products") as exc_info:
        await builder.find()
    assert isinstance(exc_info.value.__cause__, ValidationError)


# --- wrap_with_query_builder ---
@pytest.mark.asyncio
async def test_wrapped_factory_builds_fresh_configured_builders(recording_executor, offset_responder):
    respond = offset_responder(total=30)
    executor = recording_executor(lambda request: respond(request["query"]))
    query = wrap_with_query_builder(
        executor,
        request_transformer=lambda q: {"query": q},
        response_transformer=lambda raw: raw,
        collection_name="products",
        default_limit=25,
    )

    first, second = query(), query()
    assert first is not second
    assert first.collection_name == "products"
    assert first.page_limit == 25

    await first.eq("a", 1).find()
    assert executor.requests == [
        {"query": {"filter": '{"a":1}', "paging": {"limit": 25, "offset": 0}}}
    ]
