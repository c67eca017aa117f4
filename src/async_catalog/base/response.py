# src/async_catalog/base/response.py
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Cursors(BaseModel):
    """Cursor tokens of the adjacent pages, forwarded to the executor as received."""

    model_config = ConfigDict(extra="ignore")

    next: Optional[Any] = None
    prev: Optional[Any] = None


class PagingMetadata(BaseModel):
    """Paging information returned by the executor alongside a page of items."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    count: Optional[int] = None
    offset: Optional[int] = None
    total: Optional[int] = None
    too_many_to_count: Optional[bool] = Field(default=False, alias="tooManyToCount")
    cursors: Optional[Cursors] = Field(default_factory=Cursors)


class QueryResponse(BaseModel):
    """
    The response envelope every executor returns (after the response
    transformer ran): `{"items": [...], "pagingMetadata": {...}}`. Items are
    passed through untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: List[Any] = Field(default_factory=list)
    paging_metadata: PagingMetadata = Field(
        default_factory=PagingMetadata, alias="pagingMetadata"
    )
