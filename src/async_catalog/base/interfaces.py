# src/async_catalog/base/interfaces.py

import logging
from abc import ABC, abstractmethod
from logging import LoggerAdapter
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union

Request = Dict[str, Any]
RawResponse = Dict[str, Any]

RequestTransformer = Callable[[Request], Request]
ResponseTransformer = Callable[[RawResponse], RawResponse]
ErrorTransformer = Callable[[Exception], Exception]


class RequestExecutor(Protocol):
    """
    Executes a compiled request descriptor and returns the raw response.

    May be a coroutine function or a plain callable; `QueryBuilder.find()`
    awaits the result only when it is awaitable.
    """

    def __call__(self, request: Request) -> Union[Awaitable[RawResponse], RawResponse]:
        ...


class CatalogBackend(ABC):
    """
    Base interface for catalog backends that execute compiled queries against
    a named collection.

    Implementations return the response envelope
    `{"items": [...], "pagingMetadata": {...}}` (or the backend's own shape,
    to be mapped by a response transformer).
    """

    @abstractmethod
    async def query(
        self,
        collection: str,
        request: Request,
        logger: Optional[LoggerAdapter] = None,
    ) -> RawResponse:
        """
        Executes `request` against `collection`.

        Args:
            collection: The name of the collection to query.
            request: The compiled request descriptor (`QueryBuilder.build()`).
            logger: Optional logger adapter carrying the caller's context.

        Returns:
            The raw response of the backend.
        """
        pass

    def executor(
        self, collection: str, logger: Optional[LoggerAdapter] = None
    ) -> Callable[[Request], Awaitable[RawResponse]]:
        """Binds this backend to `collection` as a request executor."""
        adapter = logger or LoggerAdapter(logging.getLogger(type(self).__module__), {})

        async def execute(request: Request) -> RawResponse:
            return await self.query(collection, request, adapter)

        return execute
