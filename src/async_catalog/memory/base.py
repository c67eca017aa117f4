import copy
import json
import logging
from logging import LoggerAdapter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from async_catalog.base.expressions import matches, parse_filter
from async_catalog.base.interfaces import CatalogBackend, RawResponse, Request
from async_catalog.base.iterator import DEFAULT_LIMIT
from async_catalog.base.utils import (
    decode_token,
    encode_token,
    get_nested_value,
    prepare_for_wire,
)
from async_catalog.base.validation import type_for_display

log = logging.getLogger(__name__)


def _sort_key(value: Any) -> Tuple[str, Any]:
    # Values of different types are grouped by type and never compared directly.
    value = prepare_for_wire(value)
    if isinstance(value, (dict, list)):
        return (type_for_display(value), json.dumps(value, sort_keys=True))
    return (type_for_display(value), value)


class MemoryCatalog(CatalogBackend):
    """
    In-memory catalog backend holding documents in wire form, keyed by
    collection name.

    Executes compiled requests (`QueryBuilder.build()`, optionally wrapped as
    `{"query": ...}`) with the reference filter evaluator. Offset requests
    report `total` unless the match count exceeds `count_limit`, in which case
    `tooManyToCount` is set instead. Cursor requests get opaque tokens that
    carry the filter, sort and offset of the adjacent page.
    """

    def __init__(
        self,
        collections: Optional[Mapping[str, Iterable[Dict[str, Any]]]] = None,
        count_limit: Optional[int] = None,
        items_key: str = "items",
        metadata_key: str = "pagingMetadata",
    ):
        self._store: Dict[str, List[Dict[str, Any]]] = {}
        self._count_limit = count_limit
        self._items_key = items_key
        self._metadata_key = metadata_key
        for name, documents in (collections or {}).items():
            self.insert_many(name, documents)

    def insert_many(self, collection: str, documents: Iterable[Dict[str, Any]]) -> int:
        stored = [copy.deepcopy(prepare_for_wire(document)) for document in documents]
        self._store.setdefault(collection, []).extend(stored)
        log.debug(f"Inserted {len(stored)} document(s) into {collection!r}")
        return len(stored)

    def documents(self, collection: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._store.get(collection, []))

    async def query(
        self,
        collection: str,
        request: Request,
        logger: Optional[LoggerAdapter] = None,
    ) -> RawResponse:
        logger = logger or LoggerAdapter(log, {})
        query = request.get("query", request)
        if not isinstance(query, dict):
            raise ValueError(f"Malformed request for {collection!r}: {request!r}")

        if "cursorPaging" in query:
            response = self._query_cursor(collection, query)
        else:
            response = self._query_offset(collection, query)
        logger.debug(
            f"Query on {collection!r} returned {len(response[self._items_key])} item(s)"
        )
        return response

    # --- Paging Strategies ---
    def _query_offset(self, collection: str, query: Dict[str, Any]) -> RawResponse:
        paging = query.get("paging") or {}
        limit = paging.get("limit", DEFAULT_LIMIT)
        offset = paging.get("offset", 0)
        filter_model = json.loads(query["filter"]) if query.get("filter") else {}

        matched = self._filter_and_sort(collection, filter_model, query.get("sort") or [])
        page = matched[offset : offset + limit]

        too_many_to_count = self._count_limit is not None and len(matched) > self._count_limit
        metadata: Dict[str, Any] = {
            "count": len(page),
            "offset": offset,
            "tooManyToCount": too_many_to_count,
        }
        if not too_many_to_count:
            metadata["total"] = len(matched)
        return {self._items_key: page, self._metadata_key: metadata}

    def _query_cursor(self, collection: str, query: Dict[str, Any]) -> RawResponse:
        cursor_paging = query.get("cursorPaging") or {}
        limit = cursor_paging.get("limit", DEFAULT_LIMIT)
        cursor = cursor_paging.get("cursor")

        if cursor:
            state = decode_token(cursor)
        else:
            state = {
                "filter": json.loads(query["filter"]) if query.get("filter") else {},
                "sort": query.get("sort") or [],
                "offset": 0,
            }
        offset = state.get("offset", 0)

        matched = self._filter_and_sort(collection, state["filter"], state["sort"])
        page = matched[offset : offset + limit]

        next_cursor = None
        if limit and offset + limit < len(matched):
            next_cursor = encode_token({**state, "offset": offset + limit})
        prev_cursor = None
        if limit and offset > 0:
            prev_cursor = encode_token({**state, "offset": max(offset - limit, 0)})

        metadata = {
            "count": len(page),
            "cursors": {"next": next_cursor, "prev": prev_cursor},
        }
        return {self._items_key: page, self._metadata_key: metadata}

    # --- Helpers ---
    def _filter_and_sort(
        self,
        collection: str,
        filter_model: Dict[str, Any],
        sort: List[Dict[str, str]],
    ) -> List[Dict[str, Any]]:
        node = parse_filter(filter_model)
        matched = [
            copy.deepcopy(document)
            for document in self._store.get(collection, [])
            if matches(node, document)
        ]
        # Stable sorts applied from the least significant key; documents
        # missing the field stay last in both directions.
        for entry in reversed(sort):
            field_name = entry["fieldName"]
            present = [d for d in matched if get_nested_value(d, field_name) is not None]
            missing = [d for d in matched if get_nested_value(d, field_name) is None]
            present.sort(
                key=lambda document: _sort_key(get_nested_value(document, field_name)),
                reverse=entry.get("order") == "DESC",
            )
            matched = present + missing
        return matched
