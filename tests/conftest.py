# tests/conftest.py
import inspect
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from async_catalog.base.query import QueryBuilder
from async_catalog.memory.base import MemoryCatalog


class RecordingExecutor:
    """
    Request executor double: records every request and answers with the
    result of `responder(request)` (a plain dict or an awaitable).
    """

    def __init__(self, responder: Callable[[Dict[str, Any]], Any]):
        self.responder = responder
        self.requests: List[Dict[str, Any]] = []

    async def __call__(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.requests.append(request)
        response = self.responder(request)
        if inspect.isawaitable(response):
            response = await response
        return response


def make_offset_responder(total: int, too_many_to_count: bool = False) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Answers offset requests with `limit` numbered items out of `total`."""

    def respond(request: Dict[str, Any]) -> Dict[str, Any]:
        paging = request["paging"]
        start = paging["offset"]
        stop = min(start + paging["limit"], total)
        items = [{"n": n} for n in range(start, stop)]
        return {
            "items": items,
            "pagingMetadata": {
                "count": len(items),
                "offset": start,
                "total": total,
                "tooManyToCount": too_many_to_count,
            },
        }

    return respond


@pytest.fixture
def qb() -> QueryBuilder:
    return QueryBuilder()


@pytest.fixture
def recording_executor() -> Callable[..., RecordingExecutor]:
    return RecordingExecutor


@pytest.fixture
def offset_responder() -> Callable[..., Callable[[Dict[str, Any]], Dict[str, Any]]]:
    return make_offset_responder


@pytest.fixture
def wire_products() -> List[Dict[str, Any]]:
    """Products as the catalog API returns them (wire field names)."""
    return [
        {
            "id": "p1",
            "title": "Blue Shirt",
            "slug": "blue-shirt",
            "brand": "Acme",
            "sku": "SH-1",
            "createdDate": "2024-01-05T10:00:00Z",
            "price": {"price": 20, "currency": "USD"},
            "convertedPriceData": {"price": 18.5, "currency": "EUR"},
            "tags": ["sale", "summer"],
            "stock": {"inStock": True, "quantity": 4},
            "media": {"items": [{"image": {"url": "https://img.test/p1.png", "width": 100, "height": 80}}]},
            "productOptions": [
                {"name": "Color", "choices": [{"value": "#0000FF", "description": "Blue"}]},
                {"name": "Size", "choices": [{"value": "M", "description": "Medium"}]},
            ],
        },
        {
            "id": "p2",
            "title": "Black Hat",
            "slug": "black-hat",
            "brand": "Acme",
            "createdDate": "2024-02-01T09:00:00Z",
            "price": {"price": 35, "currency": "USD"},
            "tags": ["winter"],
            "stock": {"inStock": False, "quantity": 0},
        },
        {
            "id": "p3",
            "title": "Blazer",
            "slug": "blazer",
            "brand": "Tailor & Co",
            "createdDate": "2023-11-20T12:00:00Z",
            "price": {"price": 120, "currency": "USD"},
            "tags": ["sale"],
            "stock": {"inStock": True, "quantity": 1},
        },
        {
            "id": "p4",
            "title": "Red Scarf",
            "slug": "red-scarf",
            "createdDate": "2024-03-10T08:30:00Z",
            "price": {"price": 12, "currency": "USD"},
            "tags": [],
            "stock": {"inStock": True, "quantity": 30},
        },
    ]


@pytest.fixture
def product_catalog(wire_products: List[Dict[str, Any]]) -> MemoryCatalog:
    """A catalog answering in the products API shape (`products`/`metadata`)."""
    return MemoryCatalog(
        {"products": wire_products}, items_key="products", metadata_key="metadata"
    )


@pytest.fixture
def documents() -> List[Dict[str, Any]]:
    """Plain documents used by evaluator and optimizer tests."""
    return [
        {"name": "Alpha", "price": 5, "brand": "acme", "tags": ["a", "b"], "stock": 0,
         "created": datetime(2024, 1, 1, tzinfo=timezone.utc), "meta": {"color": "red"}},
        {"name": "beta", "price": 15, "brand": "acme", "tags": ["b"], "stock": 3,
         "created": datetime(2024, 5, 1, tzinfo=timezone.utc), "meta": {"color": "blue"}},
        {"name": "Gamma", "price": 25, "brand": "other", "tags": [], "stock": 7,
         "created": datetime(2023, 7, 1, tzinfo=timezone.utc)},
        {"name": "Blaze", "price": 10, "brand": None, "tags": ["c"], "stock": 1,
         "meta": {"color": "Red"}},
        {"name": "delta", "price": 30, "tags": ["a"], "stock": 2},
    ]
