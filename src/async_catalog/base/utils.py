import base64
import json
import logging
from dataclasses import is_dataclass, asdict
from datetime import date, datetime, timezone
from typing import Any, Mapping

logger = logging.getLogger(__name__)

_MISSING = object()


def prepare_for_wire(data: Any) -> Any:
    """
    Recursively convert Pydantic models, dataclasses, and special types to JSON-compatible values.

    It handles:
    - Pydantic BaseModel instances (dumped by alias)
    - Python dataclasses
    - Dictionaries (processing values recursively)
    - Lists, tuples and sets (all become lists)
    - datetime and date values (ISO-8601 strings, naive datetimes read as UTC)
    - Pydantic URL types (converting to strings)

    Args:
        data: The data to convert

    Returns:
        The converted data, ready for `json.dumps`
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_wire(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        return prepare_for_wire(data.model_dump(mode="json", by_alias=True))

    if isinstance(data, datetime):
        if data.tzinfo is None:
            data = data.replace(tzinfo=timezone.utc)
        return data.isoformat().replace("+00:00", "Z")

    if isinstance(data, date):
        return data.isoformat()

    if isinstance(data, dict):
        return {k: prepare_for_wire(v) for k, v in data.items()}

    if isinstance(data, (list, tuple, set)):
        return [prepare_for_wire(item) for item in data]

    if hasattr(data, "__class__") and data.__class__.__module__ == "pydantic.networks":
        return str(data)

    return data


def to_json(data: Any) -> str:
    """Serializes `data` compactly after `prepare_for_wire`."""
    return json.dumps(prepare_for_wire(data), separators=(",", ":"))


def get_nested_value(item: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """
    Resolves a dot-separated path against nested mappings.

    Returns `default` as soon as a segment is missing or the current value is
    not a mapping.
    """
    current: Any = item
    for segment in path.split("."):
        if not isinstance(current, Mapping):
            return default
        current = current.get(segment, _MISSING)
        if current is _MISSING:
            return default
    return current


def has_nested_value(item: Mapping[str, Any], path: str) -> bool:
    return get_nested_value(item, path, _MISSING) is not _MISSING


def encode_token(payload: Mapping[str, Any]) -> str:
    """Encodes a JSON payload as an opaque url-safe token."""
    raw = to_json(payload).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_token(token: str) -> Any:
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
        return json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError) as e:
        logger.debug(f"Could not decode token {token!r}: {e}")
        raise ValueError(f"Malformed cursor token: {token!r}") from e
