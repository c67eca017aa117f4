# src/async_catalog/base/rename.py
"""
Translation of public field paths into backend storage field paths.

The per-segment adjuster is supplied by the caller, typically
`EntityTransformation.wire_name` of the queried collection.
"""
from typing import Any, Callable

NameAdjuster = Callable[[str], str]


def identity(segment: str) -> str:
    return segment


def rename_field(field: Any, adjust: NameAdjuster = identity) -> Any:
    """
    Rewrites every dot-separated segment of `field` through `adjust`.

    Non-string values are returned unchanged so that callers may pass values
    that were already resolved (or are invalid and will be reported by the
    filter validation).
    """
    if not isinstance(field, str):
        return field
    return ".".join(adjust(segment) for segment in field.split("."))
