"""HTTP client for the remote catalog API.

Sends compiled queries as JSON POST requests and returns the decoded
responses; plugs into query builders as a request executor.
"""

import logging
from logging import LoggerAdapter
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from async_catalog.base.exceptions import CatalogRequestError
from async_catalog.base.interfaces import CatalogBackend, RawResponse, Request
from async_catalog.base.query import QueryBuilder, wrap_with_query_builder
from async_catalog.http.config import CatalogSettings

logger = logging.getLogger(__name__)

# Query endpoints of the catalog collections, relative to the base URL.
QUERY_PATHS: Dict[str, str] = {
    "products": "/stores/v1/products/query",
    "collections": "/stores/v1/collections/query",
}


class HttpCatalogClient(CatalogBackend):
    """HTTP client for a remote catalog.

    Owns a lazily created `httpx.AsyncClient`; close it with `close()` or use
    the client as an async context manager.
    """

    def __init__(
        self,
        settings: Optional[CatalogSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        query_paths: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize catalog client.

        Args:
            settings: Transport settings; read from the environment when omitted.
            transport: Optional httpx transport (e.g. `httpx.MockTransport`).
            query_paths: Overrides of the collection query endpoints.
        """
        self.settings = settings or CatalogSettings()
        self._transport = transport
        self._query_paths = {**QUERY_PATHS, **(query_paths or {})}
        self._client: Optional[httpx.AsyncClient] = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.access_token:
            token = self.settings.access_token
            headers["Authorization"] = token if " " in token else f"Bearer {token}"
        if self.settings.origin:
            headers["origin"] = self.settings.origin
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpCatalogClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def query_path(self, collection: str) -> str:
        return self._query_paths.get(collection, f"/{collection}/query")

    async def post(
        self,
        path: str,
        payload: Dict[str, Any],
        logger_adapter: Optional[LoggerAdapter] = None,
    ) -> Dict[str, Any]:
        """POST `payload` as JSON and return the decoded response body.

        Raises:
            CatalogRequestError: On a non-2xx status, an undecodable body or a
                transport failure.
        """
        log = logger_adapter or LoggerAdapter(logger, {})
        try:
            client = await self._get_client()
            log.debug(f"POST {path}: {payload!r}")
            response = await client.post(path, json=payload)
        except httpx.RequestError as e:
            log.error(f"Catalog request to {path} failed: {e}")
            raise CatalogRequestError(f"Request failed: {e}") from e

        if not response.is_success:
            log.warning(
                f"Catalog request to {path} returned {response.status_code}: {response.text}"
            )
            raise CatalogRequestError(
                f"Catalog request to {path} failed with status {response.status_code}",
                status_code=response.status_code,
                details=_error_details(response),
            )

        try:
            return response.json()
        except ValueError as e:
            raise CatalogRequestError(
                f"Catalog response from {path} is not valid JSON",
                status_code=response.status_code,
                details=response.text,
            ) from e

    async def query(
        self,
        collection: str,
        request: Request,
        logger: Optional[LoggerAdapter] = None,
    ) -> RawResponse:
        return await self.post(self.query_path(collection), request, logger)

    def query_builder(self, collection: str, **options: Any) -> Callable[[], QueryBuilder]:
        """Builder factory for `collection`, paging by the configured default page size."""
        options.setdefault("default_limit", self.settings.default_page_size)
        options.setdefault("collection_name", collection)
        return wrap_with_query_builder(self.executor(collection), **options)


def _error_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
