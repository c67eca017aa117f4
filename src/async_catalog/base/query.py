# src/async_catalog/base/query.py
import inspect
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from .exceptions import CatalogError
from .filter import FilterState
from .interfaces import (
    ErrorTransformer,
    RequestExecutor,
    RequestTransformer,
    ResponseTransformer,
)
from .iterator import (
    DEFAULT_LIMIT,
    CursorPageIterator,
    OffsetPageIterator,
    PageIterator,
)
from .rename import NameAdjuster, identity, rename_field
from .response import Cursors, QueryResponse
from .utils import to_json
from .validation import InvalidArgument

# --- Setup Logging ---
log = logging.getLogger(__name__)

Q = TypeVar("Q", bound="QueryBuilder")


def _unchanged(value: Any) -> Any:
    return value


# --- Paging ---
class PagingMethod(Enum):
    OFFSET = "OFFSET"
    CURSOR = "CURSOR"


@dataclass(frozen=True)
class Paging:
    """Paging state of a builder. `limit=None` means the default page size."""

    limit: Optional[int] = None
    offset: int = 0
    cursor: Optional[Any] = None


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# --- Query Builder ---
@dataclass(frozen=True)
class QueryBuilder:
    """
    Immutable, fluent builder of catalog queries.

    Every method returns a new builder; the receiver is never modified, so a
    builder can be shared and extended along several branches. Filter
    predicates are validated when added, but failures are only recorded:
    they surface as a `FilterValidationError` from `get_filter_model()` (and
    therefore from `build_query()`, `build()` and `find()`).

    Field names given to predicates and sort methods are public names; they
    are translated with `adjust_field_name` once, as they enter the builder.

    `build()` compiles the builder into a request descriptor and `find()`
    hands that descriptor to the executor, returning a page iterator of the
    builder's paging method.
    """

    filter_state: FilterState = field(default_factory=FilterState)
    sort: Tuple[Dict[str, str], ...] = ()
    paging: Paging = field(default_factory=Paging)
    paging_method: PagingMethod = PagingMethod.OFFSET
    collection_name: Optional[str] = None
    executor: Optional[RequestExecutor] = field(default=None, compare=False)
    request_transformer: RequestTransformer = field(default=_unchanged, compare=False)
    response_transformer: ResponseTransformer = field(default=_unchanged, compare=False)
    error_transformer: Optional[ErrorTransformer] = field(default=None, compare=False)
    adjust_field_name: NameAdjuster = field(default=identity, compare=False)

    def with_changes(self: Q, **changes: Any) -> Q:
        """Returns a copy of this builder (same concrete type) with `changes` applied."""
        return replace(self, **changes)

    @property
    def invalid_arguments(self) -> Tuple[InvalidArgument, ...]:
        return self.filter_state.invalid_arguments

    @property
    def page_limit(self) -> int:
        return DEFAULT_LIMIT if self.paging.limit is None else self.paging.limit

    # --- Filter Predicates ---
    def eq(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.eq, args)

    def ne(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.ne, args)

    def ge(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.ge, args)

    def gt(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.gt, args)

    def le(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.le, args)

    def lt(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.lt, args)

    def startswith(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.startswith, args)

    def endswith(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.endswith, args)

    def contains(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.contains, args)

    def has_some(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.has_some, args)

    def has_all(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.has_all, args)

    def in_(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.in_, args)

    def exists(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.exists, args)

    def is_empty(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.is_empty, args)

    def is_not_empty(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.is_not_empty, args)

    def between(self: Q, *args: Any) -> Q:
        return self._predicate(FilterState.between, args)

    def _predicate(self: Q, method: Callable[..., FilterState], args: Tuple[Any, ...]) -> Q:
        if args:
            args = (rename_field(args[0], self.adjust_field_name),) + tuple(args[1:])
        new_state = method(self.filter_state, *args)
        log.debug(f"{method.__name__}{args!r} -> {new_state.tree!r}")
        return self.with_changes(filter_state=new_state)

    # --- Logical Composition ---
    def and_(self: Q, *args: Any) -> Q:
        """Conjunction of this builder's filter with another builder's filter."""
        return self._logical(".and_", args, FilterState.conjoin)

    def or_(self: Q, *args: Any) -> Q:
        """Disjunction of this builder's filter with another builder's filter."""
        return self._logical(".or_", args, FilterState.disjoin)

    def not_(self: Q, *args: Any) -> Q:
        """This builder's filter AND NOT the other builder's filter."""
        return self._logical(".not_", args, FilterState.negate)

    def __and__(self: Q, other: Any) -> Q:
        return self.and_(other)

    def __or__(self: Q, other: Any) -> Q:
        return self.or_(other)

    def _logical(
        self: Q,
        operator_name: str,
        args: Tuple[Any, ...],
        combine: Callable[[FilterState, FilterState], FilterState],
    ) -> Q:
        other = args[0] if args else None
        if isinstance(other, QueryBuilder) and other.collection_name is None:
            other = other.with_changes(collection_name=self.collection_name)

        invalid, valid = (
            self.filter_state.validator(operator_name, type(self).__name__)
            .arity_is(1, args)
            .is_instance_of(other, type(self))
            .is_for_collection(other, self.collection_name)
            .validate_and_aggregate()
        )
        if not valid:
            return self.with_changes(
                filter_state=self.filter_state.with_invalid_arguments(invalid)
            )
        new_state = combine(self.filter_state, other.filter_state)
        log.debug(f"{operator_name} -> {new_state.tree!r}")
        return self.with_changes(filter_state=new_state)

    # --- Filter Model ---
    def get_filter_model(self) -> Dict[str, Any]:
        """
        Returns the optimized filter model.

        Raises:
            FilterValidationError: if any builder call recorded an invalid argument.
        """
        return self.filter_state.get_filter_model()

    def set_filter_model(self: Q, filter_model: Dict[str, Any]) -> Q:
        """Replaces the filter with `filter_model` (storage field names) and clears recorded failures."""
        return self.with_changes(
            filter_state=self.filter_state.set_filter_model(filter_model)
        )

    # --- Sort ---
    def ascending(self: Q, *field_names: Any) -> Q:
        return self._sorted(".ascending", SortOrder.ASC, field_names)

    def descending(self: Q, *field_names: Any) -> Q:
        return self._sorted(".descending", SortOrder.DESC, field_names)

    def _sorted(self: Q, operator_name: str, order: SortOrder, field_names: Tuple[Any, ...]) -> Q:
        validator = self.filter_state.validator(operator_name, type(self).__name__)
        for field_name in field_names:
            validator.valid_field_name(field_name)
        invalid, valid = validator.validate_and_aggregate()
        if not valid:
            return self.with_changes(
                filter_state=self.filter_state.with_invalid_arguments(invalid)
            )
        entries = tuple(
            {"fieldName": rename_field(name, self.adjust_field_name), "order": order.value}
            for name in field_names
        )
        log.debug(f"Appending sort entries: {entries!r}")
        return self.with_changes(sort=self.sort + entries)

    # --- Paging ---
    def skip(self: Q, offset: int) -> Q:
        """Sets the absolute offset of the page (overwrites any previous offset)."""
        if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
            raise ValueError("Offset must be a non-negative integer.")
        log.debug(f"Query offset set to: {offset}")
        return self.with_changes(paging=replace(self.paging, offset=offset))

    def limit(self: Q, limit: int) -> Q:
        """Sets the page size. 0 is valid and requests no items."""
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 0:
            raise ValueError("Limit must be a non-negative integer.")
        log.debug(f"Query limit set to: {limit}")
        return self.with_changes(paging=replace(self.paging, limit=limit))

    # --- Compilation ---
    def build_query(self) -> Dict[str, Any]:
        """Compiles filter, sort and offset paging into a query object."""
        filter_model = self.get_filter_model()
        query: Dict[str, Any] = {}
        if filter_model:
            query["filter"] = to_json(filter_model)
        if self.sort:
            query["sort"] = [dict(entry) for entry in self.sort]
        query["paging"] = {"limit": self.page_limit, "offset": self.paging.offset}
        return query

    def _compile(self) -> Dict[str, Any]:
        if self.paging_method is PagingMethod.OFFSET:
            return self.build_query()

        if self.paging.cursor not in (None, ""):
            # Later pages are located by the cursor alone.
            return {"cursorPaging": {"cursor": self.paging.cursor, "limit": self.page_limit}}

        query = self.build_query()
        query.pop("paging")
        query["cursorPaging"] = {"limit": self.page_limit}
        return query

    def build(self) -> Dict[str, Any]:
        """
        Compiles the builder into the request descriptor handed to the
        executor: the paging-method-aware query, passed through the request
        transformer. Pure and repeatable.
        """
        request = self.request_transformer(self._compile())
        log.debug(f"Built request for {self.collection_name or 'query'}: {request!r}")
        return request

    # --- Execution ---
    async def find(self) -> PageIterator:
        """
        Executes the query and returns the page of results.

        Returns:
            An `OffsetPageIterator` or `CursorPageIterator`, matching the
            builder's paging method.

        Raises:
            FilterValidationError: if any builder call recorded an invalid argument.
            CatalogError: if the builder has no executor, or the transformed
                response is not a valid response envelope.
            Exception: whatever the executor raised, or the result of the
                error transformer (chained to the original cause).
        """
        if self.executor is None:
            raise CatalogError(f"{type(self).__name__} has no request executor.")

        request = self.build()
        log.info(f"Executing query for {self.collection_name or 'query'}: {request!r}")
        try:
            raw = self.executor(request)
            if inspect.isawaitable(raw):
                raw = await raw
        except Exception as e:
            if self.error_transformer is None:
                raise
            log.warning(f"Query for {self.collection_name or 'query'} failed: {e}")
            raise self.error_transformer(e) from e

        try:
            response = QueryResponse.model_validate(self.response_transformer(raw))
        except ValidationError as e:
            log.error(f"Malformed response for {self.collection_name or 'query'}: {e}")
            raise CatalogError(
                f"Malformed response envelope for {self.collection_name or 'query'}: {e}"
            ) from e

        if self.paging_method is PagingMethod.CURSOR:
            return self._cursor_iterator(response)
        return self._offset_iterator(response)

    def _offset_iterator(self, response: QueryResponse) -> OffsetPageIterator:
        metadata = response.paging_metadata
        offset = self.paging.offset if metadata.offset is None else metadata.offset
        limit = self.page_limit

        async def fetch_next_page() -> PageIterator:
            return await self._with_offset(offset + limit).find()

        async def fetch_prev_page() -> PageIterator:
            return await self._with_offset(max(offset - limit, 0)).find()

        return OffsetPageIterator(
            response.items,
            origin_query=self,
            fetch_next_page=fetch_next_page,
            fetch_prev_page=fetch_prev_page,
            limit=limit,
            offset=offset,
            total_count=metadata.total,
            too_many_to_count=bool(metadata.too_many_to_count),
        )

    def _cursor_iterator(self, response: QueryResponse) -> CursorPageIterator:
        cursors = response.paging_metadata.cursors or Cursors()

        async def fetch_next_page() -> PageIterator:
            return await self._with_cursor(cursors.next).find()

        async def fetch_prev_page() -> PageIterator:
            return await self._with_cursor(cursors.prev).find()

        return CursorPageIterator(
            response.items,
            origin_query=self,
            fetch_next_page=fetch_next_page,
            fetch_prev_page=fetch_prev_page,
            limit=self.page_limit,
            next_cursor=cursors.next,
            prev_cursor=cursors.prev,
        )

    def _with_offset(self: Q, offset: int) -> Q:
        return self.with_changes(
            paging=Paging(limit=self.page_limit, offset=offset, cursor=None)
        )

    def _with_cursor(self: Q, cursor: Optional[Any]) -> Q:
        return self.with_changes(paging=replace(self.paging, cursor=cursor))


def wrap_with_query_builder(
    executor: RequestExecutor,
    request_transformer: Optional[RequestTransformer] = None,
    response_transformer: Optional[ResponseTransformer] = None,
    error_transformer: Optional[ErrorTransformer] = None,
    paging_method: PagingMethod = PagingMethod.OFFSET,
    collection_name: Optional[str] = None,
    adjust_field_name: NameAdjuster = identity,
    default_limit: Optional[int] = None,
    builder_cls: Type[QueryBuilder] = QueryBuilder,
) -> Callable[[], QueryBuilder]:
    """
    Wraps a request executor into a factory of fresh query builders that
    share the given collaborators. `default_limit` replaces the default page
    size of the builders.

    Example:
        query_products = wrap_with_query_builder(client.executor("products"))
        page = await query_products().eq("brand", "acme").limit(10).find()
    """

    def factory() -> QueryBuilder:
        return builder_cls(
            paging=Paging(limit=default_limit),
            paging_method=paging_method,
            collection_name=collection_name,
            executor=executor,
            request_transformer=request_transformer or _unchanged,
            response_transformer=response_transformer or _unchanged,
            error_transformer=error_transformer,
            adjust_field_name=adjust_field_name,
        )

    return factory
