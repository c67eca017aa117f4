"""Product catalog operations built on the query builder."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from async_catalog.base.exceptions import CatalogRequestError, ObjectNotFoundException
from async_catalog.base.interfaces import RawResponse, Request, RequestExecutor
from async_catalog.base.query import PagingMethod, QueryBuilder, wrap_with_query_builder
from async_catalog.catalog.models import Product
from async_catalog.catalog.normalize import normalize_product
from async_catalog.catalog.transform import PRODUCT_TRANSFORMATION

logger = logging.getLogger(__name__)

PRODUCTS = "products"

# Storefront sort keys that the catalog knows under another field name.
_SORT_FIELDS = {"latest": "lastUpdated", "trending": "lastUpdated"}


def products_request(query: Request) -> Request:
    return {"query": query}


def products_response(raw: RawResponse) -> RawResponse:
    return {
        "items": [PRODUCT_TRANSFORMATION.to_public(p) for p in raw.get("products") or []],
        "pagingMetadata": raw.get("metadata") or {},
    }


def catalog_query_error(error: Exception) -> Exception:
    return CatalogRequestError(
        f"Catalog query failed: {error}",
        status_code=getattr(error, "status_code", None),
        details=getattr(error, "details", None),
    )


def query_products(
    executor: RequestExecutor,
    paging_method: PagingMethod = PagingMethod.OFFSET,
    default_limit: Optional[int] = None,
) -> QueryBuilder:
    """
    Returns a query builder over the products collection.

    Filters and sorts take public field names (`_id`, `name`,
    `_createdDate`, ...); the builder sends their catalog names, and the
    resulting page holds products with public field names.
    """
    factory = wrap_with_query_builder(
        executor,
        request_transformer=products_request,
        response_transformer=products_response,
        error_transformer=catalog_query_error,
        paging_method=paging_method,
        collection_name=PRODUCTS,
        adjust_field_name=PRODUCT_TRANSFORMATION.wire_name,
        default_limit=default_limit,
    )
    return factory()


async def get_product_by_slug(executor: RequestExecutor, slug: str) -> Product:
    """
    Fetches the product with the given slug.

    Raises:
        ObjectNotFoundException: if no product has that slug.
    """
    page = await query_products(executor).eq("slug", slug).limit(1).find()
    if not page.items:
        raise ObjectNotFoundException(f"Product with slug {slug!r} not found")
    return normalize_product(page.items[0])


async def list_products(executor: RequestExecutor, first: int = 4) -> List[Product]:
    """Fetches the `first` most recently created products."""
    page = await query_products(executor).descending("_createdDate").limit(first).find()
    return [normalize_product(item) for item in page.items]


async def list_product_paths(executor: RequestExecutor, page_size: Optional[int] = None) -> List[str]:
    """Returns the storefront path (`/<slug>`) of every product, following all pages."""
    query = query_products(executor)
    if page_size is not None:
        query = query.limit(page_size)

    paths: List[str] = []
    page = await query.find()
    while True:
        paths.extend(f"/{item.get('slug', '')}" for item in page.items)
        if not page.has_next():
            break
        page = await page.next()
    logger.debug(f"Collected {len(paths)} product path(s)")
    return paths


def parse_sort(sort: Optional[str]) -> Optional[Tuple[str, bool]]:
    """
    Parses a storefront sort key such as `"price-asc"` or `"latest-desc"` into
    `(field, descending)`. Returns None when no sort is requested.
    """
    if not sort:
        return None
    field_name, _, direction = sort.partition("-")
    if not field_name:
        return None
    return _SORT_FIELDS.get(field_name, field_name), direction != "asc"


async def search_products(
    executor: RequestExecutor,
    search: Optional[str] = None,
    category_id: Optional[str] = None,
    sort: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Searches products by name prefix, or lists a category's products.

    Returns:
        `{"products": [...], "found": bool}`
    """
    query = query_products(executor)
    parsed = parse_sort(sort)
    if parsed:
        field_name, descending = parsed
        query = query.descending(field_name) if descending else query.ascending(field_name)
    if category_id:
        query = query.eq("collections.id", category_id)
    elif search:
        query = query.startswith("name", search)

    page = await query.find()
    products = [normalize_product(item) for item in page.items]
    return {"products": products, "found": bool(products)}
