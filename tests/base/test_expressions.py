# tests/base/test_expressions.py

from datetime import date, datetime, timezone

import pytest

from async_catalog.base.expressions import And, FieldPredicate, Not, Or, matches, parse_filter
from async_catalog.base.filter import QueryOperator


def _names(documents, model):
    node = parse_filter(model)
    return [d["name"] for d in documents if matches(node, d)]


# --- Parsing ---
def test_parse_single_predicate():
    assert parse_filter({"a": 1}) == FieldPredicate("a", QueryOperator.EQ, 1)


def test_parse_object_entries_as_conjuncts():
    assert parse_filter({"a": 1, "b": {"$gt": 2, "$lt": 5}}) == And(
        (
            FieldPredicate("a", QueryOperator.EQ, 1),
            FieldPredicate("b", QueryOperator.GT, 2),
            FieldPredicate("b", QueryOperator.LT, 5),
        )
    )


def test_parse_logical_nodes():
    node = parse_filter({"$or": [{"a": 1}, {"$not": [{"b": 2}]}]})
    assert node == Or(
        (
            FieldPredicate("a", QueryOperator.EQ, 1),
            Not(FieldPredicate("b", QueryOperator.EQ, 2)),
        )
    )


def test_parse_empty_filter_is_universal():
    assert parse_filter({}) == And(())
    assert matches(parse_filter({}), {"anything": 1})


def test_nested_objects_without_operators_are_equality_operands():
    assert parse_filter({"meta": {"color": "red"}}) == FieldPredicate(
        "meta", QueryOperator.EQ, {"color": "red"}
    )


@pytest.mark.parametrize(
    "model",
    [
        {"$nor": [{"a": 1}]},
        {"a": {"$regex": "x"}},
        {"$and": {"a": 1}},
        ["a"],
    ],
)
def test_parse_rejects_malformed_models(model):
    with pytest.raises(ValueError):
        parse_filter(model)


# --- Evaluation ---
def test_equality_and_dotted_paths(documents):
    assert _names(documents, {"brand": "acme"}) == ["Alpha", "beta"]
    assert _names(documents, {"meta.color": "red"}) == ["Alpha"]
    assert _names(documents, {"brand": None}) == ["Blaze", "delta"]
    assert _names(documents, {"brand": {"$ne": None}}) == ["Alpha", "beta", "Gamma"]


def test_ordered_comparisons(documents):
    assert _names(documents, {"price": {"$gt": 10, "$lte": 25}}) == ["beta", "Gamma"]
    assert _names(documents, {"price": {"$gte": 30}}) == ["delta"]
    # Mixed types never compare.
    assert _names(documents, {"price": {"$lt": "z"}}) == []


def test_date_comparisons(documents):
    since = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert _names(documents, {"created": {"$gte": since}}) == ["Alpha", "beta"]
    assert _names(documents, {"created": {"$lt": date(2024, 1, 1)}}) == ["Gamma"]


def test_string_operators_ignore_case(documents):
    assert _names(documents, {"name": {"$startsWith": "b"}}) == ["beta", "Blaze"]
    assert _names(documents, {"name": {"$endsWith": "A"}}) == ["Alpha", "beta", "Gamma", "delta"]
    assert _names(documents, {"name": {"$contains": "LT"}}) == ["delta"]
    assert _names(documents, {"price": {"$startsWith": "1"}}) == []


def test_set_operators(documents):
    assert _names(documents, {"tags": {"$contains": "b"}}) == ["Alpha", "beta"]
    assert _names(documents, {"price": {"$in": [5, 30]}}) == ["Alpha", "delta"]
    assert _names(documents, {"tags": {"$in": ["c"]}}) == ["Blaze"]
    assert _names(documents, {"tags": {"$hasSome": ["a", "c"]}}) == ["Alpha", "Blaze", "delta"]
    assert _names(documents, {"tags": {"$hasAll": ["a", "b"]}}) == ["Alpha"]
    assert _names(documents, {"name": {"$hasSome": ["Alpha"]}}) == []


def test_exists(documents):
    assert _names(documents, {"meta": {"$exists": True}}) == ["Alpha", "beta", "Blaze"]
    assert _names(documents, {"created": {"$exists": False}}) == ["Blaze", "delta"]


def test_logical_composition(documents):
    model = {"$or": [{"price": {"$lt": 6}}, {"$and": [{"brand": "other"}, {"$not": [{"stock": 0}]}]}]}
    assert _names(documents, model) == ["Alpha", "Gamma"]
