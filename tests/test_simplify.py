import pytest

from qengine.simplify import (
    compare_values,
    contains_subquery,
    is_aggregate_reference,
    simplify_expr,
    split_comma_top_level,
    truthy,
    try_eval_const_predicate,
    try_eval_const_scalar,
)
from qengine.syntax import (
    BinaryExpr,
    Column,
    ExistsExpr,
    InExpr,
    InListExpr,
    Literal,
    SelectStmt,
)


def _not(expr):
    return BinaryExpr(expr, "NOT", Literal(""))


@pytest.mark.parametrize("raw", ["", "0", "false", " F ", "FALSE", "f", " 0 "])
def test_truthy_false_values(raw):
    assert truthy(raw) is False


@pytest.mark.parametrize("raw", ["1", "yes", "true", "abc", "00"])
def test_truthy_true_values(raw):
    assert truthy(raw) is True


@pytest.mark.parametrize(
    "name,expected",
    [
        ("COUNT(*)", True),
        ("SUM(t.x)", True),
        ("COUNT_DISTINCT(a, b)", True),
        ("count(x)", False),
        ("COUNT()", False),
        ("FOO(x)", False),
        ("x", False),
    ],
)
def test_is_aggregate_reference(name, expected):
    assert is_aggregate_reference(name) is expected


def test_split_simple():
    assert split_comma_top_level("a, b ,c") == ["a", "b", "c"]


def test_split_respects_parentheses_and_quotes():
    assert split_comma_top_level("f(a,b), c") == ["f(a,b)", "c"]
    assert split_comma_top_level("'x,y', z") == ["'x,y'", "z"]
    assert split_comma_top_level("'it''s, ok', w") == ["'it''s, ok'", "w"]


def test_split_empty():
    assert split_comma_top_level("") == [""]


def test_contains_subquery():
    assert contains_subquery(None) is False
    assert contains_subquery(Column("a")) is False
    assert contains_subquery(ExistsExpr(SelectStmt())) is True
    nested = BinaryExpr(Column("a"), "AND", InExpr(Column("b"), SelectStmt()))
    assert contains_subquery(nested) is True
    in_list = InListExpr(Column("a"), [Literal("1"), ExistsExpr(None)])
    assert contains_subquery(in_list) is True
    assert contains_subquery(InListExpr(Column("a"), [Literal("1")])) is False


def test_compare_values_numeric_and_text():
    assert compare_values("10", ">", "9") is True
    assert compare_values("1.0", "=", "1") is True
    assert compare_values("b", ">", "a") is True
    assert compare_values("1", "<>", "2") is True
    assert compare_values("abc", "==", "abc") is True
    assert compare_values("3", "<=", "2") is False


def test_compare_values_rejects_unknown_operator():
    with pytest.raises(ValueError):
        compare_values("1", "~", "1")


def test_const_scalar():
    assert try_eval_const_scalar(Literal("abc")) == "abc"
    assert try_eval_const_scalar(Column("x")) is None
    assert try_eval_const_scalar(None) is None
    assert try_eval_const_scalar(BinaryExpr(Literal("1"), "=", Literal("1"))) == "1"
    assert try_eval_const_scalar(_not(Literal("1"))) == "0"
    assert try_eval_const_scalar(BinaryExpr(Column("x"), "=", Literal("1"))) is None


def test_const_predicate_logic():
    assert try_eval_const_predicate(None) is True
    col = BinaryExpr(Column("x"), "=", Literal("1"))
    assert try_eval_const_predicate(BinaryExpr(col, "AND", Literal("0"))) is False
    assert try_eval_const_predicate(BinaryExpr(col, "OR", Literal("1"))) is True
    assert try_eval_const_predicate(BinaryExpr(col, "AND", Literal("1"))) is None
    assert try_eval_const_predicate(BinaryExpr(Literal("1"), "AND", Literal("true"))) is True
    assert try_eval_const_predicate(_not(_not(Literal("false")))) is False


def test_const_predicate_in_list():
    assert try_eval_const_predicate(InListExpr(Literal("b"), [Literal("a"), Literal("b")])) is True
    assert try_eval_const_predicate(InListExpr(Literal("c"), [Literal("a"), Literal("b")])) is False
    assert try_eval_const_predicate(InListExpr(Literal("b"), [Literal("b"), Column("x")])) is True
    assert try_eval_const_predicate(InListExpr(Literal("b"), [Column("x"), Literal("b")])) is None
    assert try_eval_const_predicate(InListExpr(Column("x"), [Literal("b")])) is None


def test_simplify_none():
    assert simplify_expr(None) is None


def test_simplify_and_with_true_keeps_other_side():
    cond = BinaryExpr(Column("x"), "=", Literal("1"))
    result = simplify_expr(BinaryExpr(cond.clone(), "AND", Literal("1")))
    assert result == cond
    result = simplify_expr(BinaryExpr(Literal("1"), "AND", cond.clone()))
    assert result == cond


def test_simplify_and_with_false_folds():
    expr = BinaryExpr(BinaryExpr(Literal("1"), "=", Literal("2")), "AND", Column("x"))
    assert simplify_expr(expr) == Literal("0")


def test_simplify_or():
    cond = BinaryExpr(Column("x"), ">", Literal("3"))
    assert simplify_expr(BinaryExpr(cond.clone(), "OR", Literal("1"))) == Literal("1")
    assert simplify_expr(BinaryExpr(Literal("0"), "OR", cond.clone())) == cond


def test_simplify_not():
    assert simplify_expr(_not(Literal("0"))) == Literal("1")
    kept = _not(Column("x"))
    assert simplify_expr(kept.clone()) == kept


def test_simplify_comparison():
    assert simplify_expr(BinaryExpr(Literal("5"), "<", Literal("7"))) == Literal("1")
    non_const = BinaryExpr(Column("a"), "=", Column("b"))
    assert simplify_expr(non_const.clone()) == non_const


def test_simplify_in_list():
    expr = InListExpr(Literal("2"), [Literal("1"), BinaryExpr(Literal("1"), "=", Literal("1"))])
    assert simplify_expr(expr) == Literal("0")
    kept = InListExpr(Column("x"), [Literal("1")])
    assert simplify_expr(kept.clone()) == kept


def test_simplify_leaves_subquery_untouched():
    expr = ExistsExpr(SelectStmt())
    assert simplify_expr(expr) is expr


def test_simplified_result_agrees_with_predicate():
    expr = BinaryExpr(
        BinaryExpr(Literal("1"), "=", Literal("1")),
        "OR",
        BinaryExpr(Column("y"), "=", Literal("2")),
    )
    expected = try_eval_const_predicate(expr.clone())
    assert try_eval_const_predicate(simplify_expr(expr)) == expected