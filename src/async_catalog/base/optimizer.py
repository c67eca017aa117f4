# src/async_catalog/base/optimizer.py
"""
Structural optimizer for filter models.

A filter model is a JSON-compatible tree of dicts and lists. The optimizer
rewrites it into a smaller, logically equivalent tree by applying the rules in
`OPTIMIZATIONS` bottom-up until none of them matches. Each rule is a pure
function that returns a replacement node, or None when it does not apply.
Only the first matching rule is applied to a node before the node is
optimized again, so the order of `OPTIMIZATIONS` decides the shape of the
result (never its meaning).

Values other than dicts and lists (numbers, strings, None, dates) are opaque
leaves and are never decomposed.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

log = logging.getLogger(__name__)

AND = "$and"
OR = "$or"
OPERATOR_PREFIX = "$"

Node = Any
Rule = Callable[[Node], Optional[Node]]


def _args_of(node: Node, key: str) -> Optional[List[Node]]:
    # Only a node made of the logical key alone can be rewritten without
    # dropping sibling entries.
    if isinstance(node, dict) and len(node) == 1:
        args = node.get(key)
        if isinstance(args, list):
            return args
    return None


# --- Rewrite Rules ---
def optimised_unary_and(node: Node) -> Optional[Node]:
    """{$and: [x]} -> x"""
    args = _args_of(node, AND)
    if args is not None and len(args) == 1:
        return args[0]
    return None


def optimised_empty_and(node: Node) -> Optional[Node]:
    """{$and: []} -> {}"""
    args = _args_of(node, AND)
    if args is not None and len(args) == 0:
        return {}
    return None


def is_operator_object(node: Node) -> bool:
    return (
        isinstance(node, dict)
        and len(node) > 0
        and all(key.startswith(OPERATOR_PREFIX) for key in node)
    )


def optimised_ands_as_objects(node: Node) -> Optional[Node]:
    """
    Merges the plain field objects of a conjunction into one object, kept in
    front of the operator objects. Applies only when there are at least two
    plain objects and no field name occurs in more than one of them.
    """
    args = _args_of(node, AND)
    if args is None:
        return None

    basic_objects = [arg for arg in args if not is_operator_object(arg)]
    operator_objects = [arg for arg in args if is_operator_object(arg)]

    if len(basic_objects) <= 1 or not all(isinstance(b, dict) for b in basic_objects):
        return None
    keys = [key for obj in basic_objects for key in obj]
    if len(set(keys)) != len(keys):
        return None

    combined: Dict[str, Any] = {}
    for obj in basic_objects:
        combined.update(obj)
    return {AND: [combined, *operator_objects]}


def _flatten(node: Node, key: str) -> Optional[Node]:
    args = _args_of(node, key)
    if args is None:
        return None
    if not any(_args_of(arg, key) is not None for arg in args):
        return None

    new_args: List[Node] = []
    for arg in args:
        nested = _args_of(arg, key)
        if nested is None:
            new_args.append(arg)
        else:
            new_args.extend(nested)
    return {key: new_args}


def optimised_nested_ands(node: Node) -> Optional[Node]:
    """{$and: [a, {$and: [b, c]}]} -> {$and: [a, b, c]}"""
    return _flatten(node, AND)


def optimised_nested_ors(node: Node) -> Optional[Node]:
    """{$or: [a, {$or: [b, c]}]} -> {$or: [a, b, c]}"""
    return _flatten(node, OR)


OPTIMIZATIONS: Tuple[Rule, ...] = (
    optimised_unary_and,
    optimised_empty_and,
    optimised_ands_as_objects,
    optimised_nested_ands,
    optimised_nested_ors,
)


# --- Fixed-Point Driver ---
def apply_first_optimisation(node: Node) -> Optional[Node]:
    """Returns the result of the first rule that matches `node`, or None."""
    for optimisation in OPTIMIZATIONS:
        new_node = optimisation(node)
        if new_node is not None:
            log.debug(f"Applied {optimisation.__name__}: {node!r} -> {new_node!r}")
            return new_node
    return None


def _fully_optimised(node: Node) -> Tuple[Node, bool]:
    if isinstance(node, list):
        return _fully_optimised_list(node)
    if isinstance(node, dict):
        return _fully_optimised_dict(node)
    return node, False


def _fully_optimised_list(node: List[Node]) -> Tuple[List[Node], bool]:
    results = [_fully_optimised(element) for element in node]
    changed = any(element_changed for _, element_changed in results)
    return [element for element, _ in results], changed


def _fully_optimised_dict(node: Dict[str, Any]) -> Tuple[Node, bool]:
    # Entries first, then the node itself.
    new_node = dict(node)
    entries_changed = False
    for key, value in node.items():
        new_value, changed = _fully_optimised(value)
        if changed:
            new_node[key] = new_value
            entries_changed = True

    rewritten = apply_first_optimisation(new_node)
    if rewritten is None:
        return new_node, entries_changed
    final_node, _ = _fully_optimised(rewritten)
    return final_node, True


def optimize(filter_model: Node) -> Node:
    """Rewrites `filter_model` into its optimized, logically equivalent form."""
    optimised, changed = _fully_optimised(filter_model)
    if changed:
        log.debug(f"Optimized filter model: {filter_model!r} -> {optimised!r}")
    return optimised
