# src/async_catalog/base/filter.py
import copy
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple

from .exceptions import FilterValidationError
from .optimizer import AND, OR, optimize
from .validation import FilterValidator, InvalidArgument, messages

# --- Setup Logging ---
log = logging.getLogger(__name__)

NOT = "$not"


# --- Query Operator Enum ---
class QueryOperator(Enum):
    """Field predicate operators, valued by their wire symbol."""

    # Comparison
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    # String
    CONTAINS = "$contains"
    STARTSWITH = "$startsWith"
    ENDSWITH = "$endsWith"
    # Set membership
    IN = "$in"
    HAS_SOME = "$hasSome"
    HAS_ALL = "$hasAll"
    # Existence
    EXISTS = "$exists"


class _Unset:
    """Marker for an operand that was never given a value."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def empty_filter() -> Dict[str, Any]:
    return {AND: []}


def is_empty_and(node: Any) -> bool:
    return isinstance(node, dict) and node.get(AND) == [] and len(node) == 1


def _in_and_flattened(*nodes: Dict[str, Any]) -> Dict[str, Any]:
    conjuncts: List[Any] = []
    for node in nodes:
        if isinstance(node, dict) and len(node) == 1 and isinstance(node.get(AND), list):
            conjuncts.extend(node[AND])
        else:
            conjuncts.append(node)
    return {AND: conjuncts}


def _arg(args: Sequence[Any], index: int) -> Any:
    return args[index] if len(args) > index else UNSET


# --- Filter State ---
@dataclass(frozen=True)
class FilterState:
    """
    Immutable accumulation of filter predicates.

    `tree` is the unoptimized filter model, with every predicate appended under
    an implicit top-level conjunction. `invalid_arguments` logs the validation
    failures of the calls that produced this state; a failed call leaves the
    tree as it was. Failures surface only through `get_filter_model()`.

    Field names are embedded exactly as given: translating public names into
    storage names is the caller's job (see `QueryBuilder`).
    """

    tree: Dict[str, Any] = field(default_factory=empty_filter)
    invalid_arguments: Tuple[InvalidArgument, ...] = ()

    def validator(self, operator_name: str, class_name: str = "QueryBuilder") -> FilterValidator:
        return FilterValidator(operator_name, self.invalid_arguments, class_name)

    def with_invalid_arguments(self, invalid_arguments: Sequence[InvalidArgument]) -> "FilterState":
        return replace(self, invalid_arguments=tuple(invalid_arguments))

    # --- Predicates ---
    def eq(self, *args: Any) -> "FilterState":
        return self._binary_and(QueryOperator.EQ, ".eq", args)

    def ne(self, *args: Any) -> "FilterState":
        return self._binary_and(QueryOperator.NE, ".ne", args)

    def ge(self, *args: Any) -> "FilterState":
        return self._and_logical_equivalence(QueryOperator.GTE, ".ge", args)

    def gt(self, *args: Any) -> "FilterState":
        return self._and_logical_equivalence(QueryOperator.GT, ".gt", args)

    def le(self, *args: Any) -> "FilterState":
        return self._and_logical_equivalence(QueryOperator.LTE, ".le", args)

    def lt(self, *args: Any) -> "FilterState":
        return self._and_logical_equivalence(QueryOperator.LT, ".lt", args)

    def startswith(self, *args: Any) -> "FilterState":
        return self._and_string_operand(QueryOperator.STARTSWITH, ".startswith", args)

    def endswith(self, *args: Any) -> "FilterState":
        return self._and_string_operand(QueryOperator.ENDSWITH, ".endswith", args)

    def contains(self, *args: Any) -> "FilterState":
        return self._and_string_operand(QueryOperator.CONTAINS, ".contains", args)

    def has_some(self, *args: Any) -> "FilterState":
        return self._and_set_operand(QueryOperator.HAS_SOME, ".has_some", args)

    def has_all(self, *args: Any) -> "FilterState":
        return self._and_set_operand(QueryOperator.HAS_ALL, ".has_all", args)

    def in_(self, *args: Any) -> "FilterState":
        return self._and_set_operand(QueryOperator.IN, ".in_", args)

    def exists(self, *args: Any) -> "FilterState":
        field_name, operand = _arg(args, 0), _arg(args, 1)
        invalid, valid = (
            self.validator(".exists")
            .arity_is(2, args)
            .valid_field_name(field_name)
            .type_is_boolean(operand)
            .validate_and_aggregate()
        )
        return self._extended(valid, invalid, field_name, QueryOperator.EXISTS, operand)

    def is_empty(self, *args: Any) -> "FilterState":
        field_name = _arg(args, 0)
        invalid, valid = (
            self.validator(".is_empty")
            .arity_is(1, args)
            .valid_field_name(field_name)
            .validate_and_aggregate()
        )
        if valid:
            return self.eq(field_name, None)
        return self.with_invalid_arguments(invalid)

    def is_not_empty(self, *args: Any) -> "FilterState":
        field_name = _arg(args, 0)
        invalid, valid = (
            self.validator(".is_not_empty")
            .arity_is(1, args)
            .valid_field_name(field_name)
            .validate_and_aggregate()
        )
        if valid:
            return self.ne(field_name, None)
        return self.with_invalid_arguments(invalid)

    def between(self, *args: Any) -> "FilterState":
        """Range predicate: `field >= range_start AND field < range_end`."""
        field_name, range_start, range_end = _arg(args, 0), _arg(args, 1), _arg(args, 2)
        invalid, valid = (
            self.validator(".between")
            .arity_is(3, args)
            .same_type(range_start, range_end)
            .type_is_string_number_or_date(range_start)
            .type_is_string_number_or_date(range_end)
            .validate_and_aggregate()
        )
        if valid:
            return self.ge(field_name, range_start).lt(field_name, range_end)
        return self.with_invalid_arguments(invalid)

    # --- Composition ---
    def conjoin(self, other: "FilterState") -> "FilterState":
        prefix = [] if is_empty_and(self.tree) else [self.tree]
        return FilterState(
            {AND: [*prefix, copy.deepcopy(other.tree)]},
            self.invalid_arguments + other.invalid_arguments,
        )

    def disjoin(self, other: "FilterState") -> "FilterState":
        prefix = [] if is_empty_and(self.tree) else [self.tree]
        return FilterState(
            {AND: [{OR: [*prefix, copy.deepcopy(other.tree)]}]},
            self.invalid_arguments + other.invalid_arguments,
        )

    def negate(self, other: "FilterState") -> "FilterState":
        not_clause = {NOT: [copy.deepcopy(other.tree)]}
        return FilterState(
            _in_and_flattened(self.tree, not_clause),
            self.invalid_arguments + other.invalid_arguments,
        )

    # --- Materialization ---
    def get_filter_model(self) -> Dict[str, Any]:
        """Returns the optimized filter model or raises the recorded failures."""
        if self.invalid_arguments:
            raise FilterValidationError(
                self.invalid_arguments,
                messages.filter_builder_invalid(self.invalid_arguments),
            )
        return copy.deepcopy(optimize(self.tree))

    def set_filter_model(self, filter_model: Dict[str, Any]) -> "FilterState":
        invalid, valid = (
            self.validator(".set_filter_model")
            .add_validation(
                lambda: isinstance(filter_model, dict),
                lambda: f"Invalid .set_filter_model parameter [{filter_model!r}]. "
                "The filter model must be an object.",
            )
            .validate_and_aggregate()
        )
        if not valid:
            return self.with_invalid_arguments(invalid)
        return FilterState(copy.deepcopy(filter_model), ())

    # --- Internal Helpers ---
    def _binary_and(self, operator: QueryOperator, operator_name: str, args: Sequence[Any]) -> "FilterState":
        field_name, operand = _arg(args, 0), _arg(args, 1)
        invalid, valid = (
            self.validator(operator_name)
            .arity_is(2, args)
            .valid_field_name(field_name)
            .validate_and_aggregate()
        )
        return self._extended(valid, invalid, field_name, operator, operand)

    def _and_logical_equivalence(self, operator: QueryOperator, operator_name: str, args: Sequence[Any]) -> "FilterState":
        field_name, operand = _arg(args, 0), _arg(args, 1)
        invalid, valid = (
            self.validator(operator_name)
            .arity_is(2, args)
            .valid_field_name(field_name)
            .type_is_string_number_or_date(operand)
            .validate_and_aggregate()
        )
        return self._extended(valid, invalid, field_name, operator, operand)

    def _and_string_operand(self, operator: QueryOperator, operator_name: str, args: Sequence[Any]) -> "FilterState":
        field_name, operand = _arg(args, 0), _arg(args, 1)
        invalid, valid = (
            self.validator(operator_name)
            .arity_is(2, args)
            .valid_field_name(field_name)
            .type_is_string(operand)
            .validate_and_aggregate()
        )
        return self._extended(valid, invalid, field_name, operator, operand)

    def _and_set_operand(self, operator: QueryOperator, operator_name: str, args: Sequence[Any]) -> "FilterState":
        field_name, raw_operands = _arg(args, 0), list(args[1:])
        if raw_operands and isinstance(raw_operands[0], (list, tuple, set)):
            operands = list(raw_operands[0])
        else:
            operands = raw_operands
        invalid, valid = (
            self.validator(operator_name)
            .arity_is_at_least(2, args)
            .valid_field_name(field_name)
            .type_is_string_number_or_date_for_all(operands)
            .validate_and_aggregate()
        )
        return self._extended(valid, invalid, field_name, operator, operands)

    def _extended(
        self,
        valid: bool,
        invalid_arguments: Tuple[InvalidArgument, ...],
        field_name: str,
        operator: QueryOperator,
        operand: Any,
    ) -> "FilterState":
        if not valid:
            return self.with_invalid_arguments(invalid_arguments)
        return FilterState(
            self._make_new_filter(field_name, operator, operand), invalid_arguments
        )

    def _make_new_filter(self, field_name: str, operator: QueryOperator, operand: Any) -> Dict[str, Any]:
        # An UNSET operand would vanish from the serialized filter; None keeps it.
        serializable_operand = None if operand is UNSET else operand
        new_filter = self._build_filter(field_name, operator, serializable_operand)
        log.debug(f"Adding filter predicate: {new_filter!r}")

        tree = self.tree
        if isinstance(tree.get(AND), list):
            return {**tree, AND: [*tree[AND], new_filter]}
        if not tree:
            return {AND: [new_filter]}
        return {AND: [tree, new_filter]}

    @staticmethod
    def _build_filter(field_name: str, operator: QueryOperator, operand: Any) -> Dict[str, Any]:
        if operator is QueryOperator.EQ:
            return {field_name: operand}
        return {field_name: {operator.value: operand}}
