"""Catalog collection (category) operations."""

from typing import List

from async_catalog.base.interfaces import RawResponse, Request, RequestExecutor
from async_catalog.base.query import QueryBuilder, wrap_with_query_builder
from async_catalog.catalog.models import Category
from async_catalog.catalog.normalize import normalize_category
from async_catalog.catalog.products import catalog_query_error
from async_catalog.catalog.transform import COLLECTION_TRANSFORMATION

COLLECTIONS = "collections"

# The catalog's built-in "All Products" collection.
ALL_PRODUCTS_COLLECTION_ID = "00000000-000000-000000-000000000001"


def collections_request(query: Request) -> Request:
    return {"query": query}


def collections_response(raw: RawResponse) -> RawResponse:
    return {
        "items": [
            COLLECTION_TRANSFORMATION.to_public(c) for c in raw.get("collections") or []
        ],
        "pagingMetadata": raw.get("metadata") or {},
    }


def query_collections(executor: RequestExecutor) -> QueryBuilder:
    factory = wrap_with_query_builder(
        executor,
        request_transformer=collections_request,
        response_transformer=collections_response,
        error_transformer=catalog_query_error,
        collection_name=COLLECTIONS,
        adjust_field_name=COLLECTION_TRANSFORMATION.wire_name,
    )
    return factory()


async def list_categories(executor: RequestExecutor) -> List[Category]:
    """Returns the storefront categories, without the built-in all-products collection."""
    page = await query_collections(executor).find()
    return [
        normalize_category(collection)
        for collection in page.items
        if collection.get("_id") != ALL_PRODUCTS_COLLECTION_ID
    ]
