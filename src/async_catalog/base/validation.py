# src/async_catalog/base/validation.py
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Optional, Sequence, Tuple

log = logging.getLogger(__name__)


# --- Failure Descriptor ---
@dataclass(frozen=True)
class InvalidArgument:
    """A single recorded validation failure of a builder call."""

    operator_name: str
    message: str

    def __str__(self) -> str:
        return self.message


# --- Type Classes ---
def is_number(value: Any) -> bool:
    # bool is an int subclass but never a number operand
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_date(value: Any) -> bool:
    return isinstance(value, date)


def is_string_number_or_date(value: Any) -> bool:
    return isinstance(value, str) or is_number(value) or is_date(value)


def type_for_display(value: Any) -> str:
    """Names the type class of a value the way validation messages show it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_date(value):
        return "date"
    if isinstance(value, (list, tuple, set)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _show(value: Any) -> str:
    shown = repr(value)
    return shown[:100] + "..." if len(shown) > 100 else shown


# --- Messages ---
class messages:
    """Human-readable messages for filter validation failures."""

    @staticmethod
    def arity(operator_name: str, expected: str, received: int) -> str:
        return (
            f"Invalid {operator_name} usage. {operator_name} requires "
            f"{expected} argument(s), got {received}."
        )

    @staticmethod
    def valid_field_name(operator_name: str, field: Any) -> str:
        return (
            f"Invalid {operator_name} field value [{_show(field)}]. "
            f"{operator_name} field must be a String."
        )

    @staticmethod
    def type_is_string(operator_name: str, value: Any) -> str:
        return (
            f"Invalid {operator_name} parameter value [{_show(value)}]. "
            f"{operator_name} parameter must be a String."
        )

    @staticmethod
    def type_is_boolean(operator_name: str, value: Any) -> str:
        return (
            f"Invalid {operator_name} parameter value [{_show(value)}]. "
            f"{operator_name} parameter must be a Boolean."
        )

    @staticmethod
    def type_is_string_number_or_date(operator_name: str, value: Any) -> str:
        return (
            f"Invalid {operator_name} parameter value [{_show(value)}]. "
            f"Valid {operator_name} parameter types are String, Number or Date."
        )

    @staticmethod
    def type_is_string_number_or_date_for_all(operator_name: str) -> str:
        return (
            f"Invalid {operator_name} parameter values. Valid {operator_name} "
            f"parameter types are String, Number or Date."
        )

    @staticmethod
    def same_type(operator_name: str, first: Any, second: Any) -> str:
        return (
            f"Invalid {operator_name} parameter values [{_show(first)}] and "
            f"[{_show(second)}]. Both parameters must be of the same type, got "
            f"{type_for_display(first)} and {type_for_display(second)}."
        )

    @staticmethod
    def is_instance_of_same_class(operator_name: str, class_name: str, obj: Any) -> str:
        return (
            f"Invalid {operator_name} parameter [{type(obj).__name__}]. "
            f"{operator_name} expects {class_name} only."
        )

    @staticmethod
    def is_for_collection(
        operator_name: str, class_name: str, collection_name: Optional[str]
    ) -> str:
        return (
            f"Invalid {operator_name} parameter query for [{collection_name}]. "
            f"{operator_name} accepts {class_name} for the same collection only."
        )

    @staticmethod
    def filter_builder_invalid(invalid_arguments: Sequence[InvalidArgument]) -> str:
        first = invalid_arguments[0].message
        if len(invalid_arguments) == 1:
            return first
        return f"{first} ({len(invalid_arguments) - 1} more invalid argument(s))"


# --- Aggregating Validator ---
class FilterValidator:
    """
    Chains the checks of a single builder call and folds the first failing one
    into the invalid-argument log of the receiving builder.

    Checks are registered lazily and evaluated in order by
    `validate_and_aggregate()`; evaluation stops at the first failure so that
    later checks never run against arguments an earlier check rejected.
    """

    def __init__(
        self,
        operator_name: str,
        previous_invalid_arguments: Sequence[InvalidArgument] = (),
        class_name: str = "QueryBuilder",
    ):
        self.operator_name = operator_name
        self.class_name = class_name
        self._previous = tuple(previous_invalid_arguments)
        self._checks: List[Tuple[Callable[[], bool], Callable[[], str]]] = []

    def add_validation(
        self, predicate: Callable[[], bool], message: Callable[[], str]
    ) -> "FilterValidator":
        self._checks.append((predicate, message))
        return self

    def arity_is(self, expected: int, args: Sequence[Any]) -> "FilterValidator":
        return self.add_validation(
            lambda: len(args) == expected,
            lambda: messages.arity(self.operator_name, str(expected), len(args)),
        )

    def arity_is_at_least(self, expected: int, args: Sequence[Any]) -> "FilterValidator":
        return self.add_validation(
            lambda: len(args) >= expected,
            lambda: messages.arity(
                self.operator_name, f"at least {expected}", len(args)
            ),
        )

    def valid_field_name(self, field: Any) -> "FilterValidator":
        return self.add_validation(
            lambda: isinstance(field, str),
            lambda: messages.valid_field_name(self.operator_name, field),
        )

    def type_is_string(self, value: Any) -> "FilterValidator":
        return self.add_validation(
            lambda: isinstance(value, str),
            lambda: messages.type_is_string(self.operator_name, value),
        )

    def type_is_boolean(self, value: Any) -> "FilterValidator":
        return self.add_validation(
            lambda: isinstance(value, bool),
            lambda: messages.type_is_boolean(self.operator_name, value),
        )

    def type_is_string_number_or_date(self, value: Any) -> "FilterValidator":
        return self.add_validation(
            lambda: is_string_number_or_date(value),
            lambda: messages.type_is_string_number_or_date(self.operator_name, value),
        )

    def type_is_string_number_or_date_for_all(
        self, values: Sequence[Any]
    ) -> "FilterValidator":
        return self.add_validation(
            lambda: all(is_string_number_or_date(v) for v in values),
            lambda: messages.type_is_string_number_or_date_for_all(self.operator_name),
        )

    def same_type(self, first: Any, second: Any) -> "FilterValidator":
        return self.add_validation(
            lambda: type_for_display(first) == type_for_display(second),
            lambda: messages.same_type(self.operator_name, first, second),
        )

    def is_instance_of(self, obj: Any, cls: type) -> "FilterValidator":
        return self.add_validation(
            lambda: isinstance(obj, cls),
            lambda: messages.is_instance_of_same_class(
                self.operator_name, self.class_name, obj
            ),
        )

    def is_for_collection(
        self, obj: Any, expected_collection: Optional[str]
    ) -> "FilterValidator":
        return self.add_validation(
            lambda: getattr(obj, "collection_name", None) == expected_collection,
            lambda: messages.is_for_collection(
                self.operator_name,
                self.class_name,
                getattr(obj, "collection_name", None),
            ),
        )

    def validate_and_aggregate(self) -> Tuple[Tuple[InvalidArgument, ...], bool]:
        """Returns the extended invalid-argument log and whether every check passed."""
        for predicate, message in self._checks:
            if not predicate():
                failure = InvalidArgument(self.operator_name, message())
                log.debug(f"Recorded invalid argument: {failure.message}")
                return self._previous + (failure,), False
        return self._previous, True
