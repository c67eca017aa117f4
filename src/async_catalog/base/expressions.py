# src/async_catalog/base/expressions.py
"""
Typed view of filter models and a reference evaluator.

`parse_filter` turns the wire form of a filter model into a tree of
`FilterNode` objects; `matches` decides whether a (possibly nested) dict
satisfies it. The in-memory catalog executes queries with these, and the
optimizer is checked against them.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Tuple, Union

from .filter import NOT, QueryOperator
from .optimizer import AND, OR, OPERATOR_PREFIX, is_operator_object
from .utils import get_nested_value, prepare_for_wire
from .validation import type_for_display

log = logging.getLogger(__name__)


# --- Nodes ---
@dataclass(frozen=True)
class FieldPredicate:
    field: str
    operator: QueryOperator
    operand: Any


@dataclass(frozen=True)
class And:
    children: Tuple["FilterNode", ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Or:
    children: Tuple["FilterNode", ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Not:
    child: "FilterNode"


FilterNode = Union[FieldPredicate, And, Or, Not]


# --- Parsing ---
def parse_filter(filter_model: Mapping[str, Any]) -> FilterNode:
    """
    Parses a filter model. Every entry of an object is a conjunct, so `{}`
    parses to the empty conjunction, which matches everything.

    Raises:
        ValueError: if the model uses an unknown operator or a malformed
            logical node.
    """
    if not isinstance(filter_model, Mapping):
        raise ValueError(f"Filter node must be an object, got {filter_model!r}")

    conjuncts: List[FilterNode] = []
    for key, value in filter_model.items():
        if key == AND:
            conjuncts.append(And(tuple(_parse_list(key, value))))
        elif key == OR:
            conjuncts.append(Or(tuple(_parse_list(key, value))))
        elif key == NOT:
            children = _parse_list(key, value)
            conjuncts.append(Not(children[0] if len(children) == 1 else And(tuple(children))))
        elif key.startswith(OPERATOR_PREFIX):
            raise ValueError(f"Unsupported logical operator: {key}")
        else:
            conjuncts.extend(_parse_field(key, value))

    if len(conjuncts) == 1:
        return conjuncts[0]
    return And(tuple(conjuncts))


def _parse_list(key: str, value: Any) -> List[FilterNode]:
    if not isinstance(value, list):
        raise ValueError(f"{key} expects a list of filter nodes, got {value!r}")
    return [parse_filter(child) for child in value]


def _parse_field(field_name: str, condition: Any) -> List[FilterNode]:
    if not is_operator_object(condition):
        return [FieldPredicate(field_name, QueryOperator.EQ, condition)]
    predicates = []
    for symbol, operand in condition.items():
        try:
            operator = QueryOperator(symbol)
        except ValueError as e:
            raise ValueError(f"Unsupported operator: {symbol}") from e
        predicates.append(FieldPredicate(field_name, operator, operand))
    return predicates


# --- Evaluation ---
def matches(node: FilterNode, item: Mapping[str, Any]) -> bool:
    """Evaluates `node` against `item`, resolving dotted field paths."""
    if isinstance(node, And):
        return all(matches(child, item) for child in node.children)
    if isinstance(node, Or):
        return any(matches(child, item) for child in node.children)
    if isinstance(node, Not):
        return not matches(node.child, item)
    return _check_operator(
        node.operator, get_nested_value(item, node.field), node.operand
    )


def _comparable(value: Any) -> Any:
    # Dates compare through their ISO form, as stored documents hold them.
    return prepare_for_wire(value)


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(entity_value: Any, filter_value: Any) -> bool:
        left, right = _comparable(entity_value), _comparable(filter_value)
        if left is None or right is None:
            return False
        if type_for_display(left) != type_for_display(right):
            return False
        return compare(left, right)

    return check


def _fold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def _string_check(compare: Callable[[str, str], bool]) -> Callable[[Any, Any], bool]:
    def check(entity_value: Any, filter_value: Any) -> bool:
        if not isinstance(entity_value, str) or not isinstance(filter_value, str):
            return False
        return compare(entity_value.casefold(), filter_value.casefold())

    return check


def _contains(entity_value: Any, filter_value: Any) -> bool:
    if isinstance(entity_value, list):
        return _fold(_comparable(filter_value)) in [_fold(v) for v in _comparable(entity_value)]
    return _string_check(lambda left, right: right in left)(entity_value, filter_value)


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set)):
        return [_comparable(v) for v in value]
    return [_comparable(value)]


def _in(entity_value: Any, filter_value: Any) -> bool:
    candidates = _as_list(filter_value)
    if isinstance(entity_value, list):
        return any(v in candidates for v in _as_list(entity_value))
    return _comparable(entity_value) in candidates


def _has_some(entity_value: Any, filter_value: Any) -> bool:
    if not isinstance(entity_value, list):
        return False
    values = _as_list(entity_value)
    return any(candidate in values for candidate in _as_list(filter_value))


def _has_all(entity_value: Any, filter_value: Any) -> bool:
    if not isinstance(entity_value, list):
        return False
    values = _as_list(entity_value)
    return all(candidate in values for candidate in _as_list(filter_value))


_CHECKS: Dict[QueryOperator, Callable[[Any, Any], bool]] = {
    QueryOperator.EQ: lambda e, f: _comparable(e) == _comparable(f),
    QueryOperator.NE: lambda e, f: _comparable(e) != _comparable(f),
    QueryOperator.GT: _ordered(lambda left, right: left > right),
    QueryOperator.GTE: _ordered(lambda left, right: left >= right),
    QueryOperator.LT: _ordered(lambda left, right: left < right),
    QueryOperator.LTE: _ordered(lambda left, right: left <= right),
    QueryOperator.STARTSWITH: _string_check(lambda left, right: left.startswith(right)),
    QueryOperator.ENDSWITH: _string_check(lambda left, right: left.endswith(right)),
    QueryOperator.CONTAINS: _contains,
    QueryOperator.IN: _in,
    QueryOperator.HAS_SOME: _has_some,
    QueryOperator.HAS_ALL: _has_all,
    QueryOperator.EXISTS: lambda e, f: (e is not None) == bool(f),
}


def _check_operator(operator: QueryOperator, entity_value: Any, filter_value: Any) -> bool:
    try:
        check = _CHECKS[operator]
    except KeyError as e:
        raise ValueError(f"Unsupported operator: {operator}") from e
    return check(entity_value, filter_value)
