# src/async_catalog/__init__.py

"""
Async Catalog Library Initialization.

This package provides an asynchronous data-access layer for a remote
product/collection catalog: an immutable fluent query builder, a filter
optimizer, offset and cursor page iterators, and normalization of catalog
entities into a stable domain model.

It initializes a logger with a NullHandler and makes the query builder,
iterators, exceptions, and backends available at the top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False  # Prevent log messages from propagating to the root logger

# --------------------------------------------------------------------------
# Core Interface and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import CatalogBackend, RequestExecutor
from .base.exceptions import (
    CatalogError,
    CatalogRequestError,
    FilterValidationError,
    ObjectNotFoundException,
    PagingError,
)

# --------------------------------------------------------------------------
# Query Building Exports
# --------------------------------------------------------------------------
# QueryBuilder is the primary way to construct queries; wrap_with_query_builder
# binds an executor and its transformers into a builder factory.
from .base.filter import UNSET, QueryOperator
from .base.optimizer import optimize
from .base.query import Paging, PagingMethod, QueryBuilder, wrap_with_query_builder
from .base.rename import rename_field

# --------------------------------------------------------------------------
# Paging Exports
# --------------------------------------------------------------------------
from .base.iterator import CursorPageIterator, OffsetPageIterator, PageIterator

# --------------------------------------------------------------------------
# Backend Exports
# --------------------------------------------------------------------------
from .memory.base import MemoryCatalog
from .http.client import HttpCatalogClient
from .http.config import CatalogSettings

# --------------------------------------------------------------------------
# __all__ Definition
# --------------------------------------------------------------------------
__all__ = [
    # Core
    "CatalogBackend",
    "RequestExecutor",
    # Exceptions
    "CatalogError",
    "CatalogRequestError",
    "FilterValidationError",
    "ObjectNotFoundException",
    "PagingError",
    # Query
    "QueryBuilder",
    "QueryOperator",
    "Paging",
    "PagingMethod",
    "UNSET",
    "optimize",
    "rename_field",
    "wrap_with_query_builder",
    # Paging
    "PageIterator",
    "OffsetPageIterator",
    "CursorPageIterator",
    # Backends
    "MemoryCatalog",
    "HttpCatalogClient",
    "CatalogSettings",
    # Logging
    "logger",
]
