import pytest

from flowbuilder.workflow.conditions import (
    BoolOp,
    Compare,
    FieldGet,
    Literal,
    Name,
    default_condition_label,
    evaluate_condition,
    parse_condition,
)
from flowbuilder.workflow.errors import ConditionSyntaxError


def test_parse_builds_field_comparison():
    tree = parse_condition("State['score'] > 0")

    assert tree == Compare(">", FieldGet(Name("State"), Literal("score")), Literal(0))


def test_parse_respects_boolean_precedence():
    tree = parse_condition("a || b && c")

    assert isinstance(tree, BoolOp)
    assert tree.op == "or"
    assert tree.right == BoolOp("and", Name("b"), Name("c"))


def test_parse_rejects_malformed_expression():
    with pytest.raises(ConditionSyntaxError):
        parse_condition("State['score'] >")

    with pytest.raises(ConditionSyntaxError):
        parse_condition("State; import os")


def test_branch_pair_selects_exactly_one_edge():
    data = {"v": 5}

    assert evaluate_condition("X['v'] > 0", data, "X") is True
    assert evaluate_condition("X['v'] <= 0", data, "X") is False


def test_field_access_variants():
    data = {"user": {"name": "ada", "tags": ["a", "b"]}, "count": 3}

    assert evaluate_condition("S.user.name == 'ada'", data, "S")
    assert evaluate_condition("S['user']['tags'][1] === \"b\"", data, "S")
    assert evaluate_condition("S.user.tags.length == 2", data, "S")
    assert evaluate_condition("S['count'] >= 3 && !(S['count'] > 3)", data, "S")
    assert evaluate_condition("S['count'] > -1", data, "S")


def test_missing_key_reads_as_null():
    assert evaluate_condition("S['missing'] == null", {}, "S")
    assert evaluate_condition("S['missing'] > 0", {}, "S") is False


def test_incomparable_values_are_false():
    assert evaluate_condition("S['v'] > 1", {"v": "text"}, "S") is False


def test_fail_closed_on_errors():
    # unknown name
    assert evaluate_condition("Other['v'] > 0", {"v": 1}, "S") is False
    # field of null
    assert evaluate_condition("S['a']['b'] == 1", {}, "S") is False
    # unhashable key
    assert evaluate_condition("S[S['k']] > 0", {"k": [1]}, "S") is False
    assert evaluate_condition("S[S['k']] == null", {"k": {"a": 1}}, "S") is False
    # syntax error
    assert evaluate_condition("S['v'] >>> 1", {"v": 1}, "S") is False
    # empty
    assert evaluate_condition("   ", {"v": 1}, "S") is False


def test_truthiness_of_bare_values():
    assert evaluate_condition("S['items']", {"items": []}, "S")
    assert evaluate_condition("S['flag']", {"flag": 0}, "S") is False
    assert evaluate_condition("S['name'] || false", {"name": ""}, "S") is False


def test_default_condition_label():
    label = default_condition_label("State")

    assert label == "State['value'] > 0"
    assert evaluate_condition(label, {"value": 2}, "State")
