import pytest

from qengine.lexer import SqlSyntaxError, tokenize
from qengine.parser import Parser, parse_select
from qengine.syntax import (
    BinaryExpr,
    Column,
    ExistsExpr,
    InExpr,
    InListExpr,
    JoinType,
    Literal,
)


def test_select_star():
    stmt = parse_select("SELECT * FROM users;")
    assert stmt.columns == [Column("*")]
    assert stmt.table == "users"
    assert stmt.from_.table == "users"
    assert stmt.from_.alias == ""
    assert stmt.limit == -1
    assert stmt.distinct is False


def test_distinct_columns_and_where():
    stmt = parse_select("SELECT DISTINCT name, u.age FROM users u WHERE age > 30")
    assert stmt.distinct is True
    assert stmt.columns == [Column("name"), Column("u.age")]
    assert stmt.from_.alias == "u"
    assert stmt.from_.effective_name() == "u"
    assert stmt.where == BinaryExpr(Column("age"), ">", Literal("30"))


def test_alias_with_as():
    stmt = parse_select("SELECT a FROM t AS x")
    assert stmt.from_.table == "t"
    assert stmt.from_.alias == "x"


def test_left_outer_join():
    stmt = parse_select(
        "SELECT u.name FROM users u LEFT OUTER JOIN orders o ON u.id = o.user_id"
    )
    assert len(stmt.joins) == 1
    join = stmt.joins[0]
    assert join.type is JoinType.LEFT
    assert join.right.table == "orders"
    assert join.right.alias == "o"
    assert join.condition == BinaryExpr(Column("u.id"), "=", Column("o.user_id"))


def test_plain_join_is_inner_and_cross_has_no_condition():
    stmt = parse_select("SELECT * FROM a JOIN b ON a.x = b.x CROSS JOIN c")
    assert [j.type for j in stmt.joins] == [JoinType.INNER, JoinType.CROSS]
    assert stmt.joins[1].condition is None
    assert stmt.joins[1].right.table == "c"


def test_group_having_order_limit():
    stmt = parse_select(
        "SELECT dept, count(*) FROM emp GROUP BY dept HAVING COUNT(*) > 1 "
        "ORDER BY dept DESC LIMIT 10"
    )
    assert stmt.columns == [Column("dept"), Column("COUNT(*)")]
    assert stmt.group_by == [Column("dept")]
    assert stmt.having == BinaryExpr(Column("COUNT(*)"), ">", Literal("1"))
    assert stmt.order_by == "dept"
    assert stmt.order_by_ascending is False
    assert stmt.limit == 10


def test_aggregate_with_multiple_arguments():
    stmt = parse_select("SELECT count_distinct(a, t.b) FROM t")
    assert stmt.columns == [Column("COUNT_DISTINCT(a, t.b)")]


def test_limit_negative_is_out_of_range():
    with pytest.raises(SqlSyntaxError, match="LIMIT out of range"):
        parse_select("SELECT a FROM t LIMIT -1")


def test_limit_too_large_is_out_of_range():
    with pytest.raises(SqlSyntaxError, match="LIMIT out of range"):
        parse_select("SELECT a FROM t LIMIT 2147483648")


def test_limit_decimal_keeps_integer_part():
    assert parse_select("SELECT a FROM t LIMIT 7.9").limit == 7


def test_in_list_and_not_in_list():
    stmt = parse_select("SELECT a FROM t WHERE a IN (1, 2) AND b NOT IN ('x')")
    assert stmt.where == BinaryExpr(
        InListExpr(Column("a"), [Literal("1"), Literal("2")]),
        "AND",
        BinaryExpr(InListExpr(Column("b"), [Literal("x")]), "NOT", Literal("")),
    )


def test_in_subquery():
    stmt = parse_select("SELECT a FROM t WHERE a IN (SELECT b FROM s)")
    assert isinstance(stmt.where, InExpr)
    assert stmt.where.value == Column("a")
    assert stmt.where.subquery.table == "s"
    assert stmt.where.subquery.columns == [Column("b")]


def test_exists_subquery():
    stmt = parse_select("SELECT a FROM t WHERE EXISTS (SELECT * FROM s WHERE s.id = 1)")
    assert isinstance(stmt.where, ExistsExpr)
    assert stmt.where.subquery.table == "s"


def test_and_binds_tighter_than_or():
    expr = Parser(tokenize("a = 1 OR b = 2 AND c = 3")).parse_expression()
    assert expr == BinaryExpr(
        BinaryExpr(Column("a"), "=", Literal("1")),
        "OR",
        BinaryExpr(
            BinaryExpr(Column("b"), "=", Literal("2")),
            "AND",
            BinaryExpr(Column("c"), "=", Literal("3")),
        ),
    )


def test_parentheses_override_precedence():
    expr = Parser(tokenize("(a = 1 OR b = 2) AND c = 3")).parse_expression()
    assert expr.op == "AND"
    assert expr.left.op == "OR"


def test_not_not_stacks():
    expr = Parser(tokenize("NOT NOT a = 1")).parse_expression()
    inner = BinaryExpr(Column("a"), "=", Literal("1"))
    assert expr == BinaryExpr(BinaryExpr(inner, "NOT", Literal("")), "NOT", Literal(""))


def test_parse_rejects_non_select():
    with pytest.raises(SqlSyntaxError, match="only accepts SELECT"):
        parse_select("DELETE FROM t")


def test_missing_from_reports_expected_token():
    with pytest.raises(SqlSyntaxError, match="Expected FROM but got END"):
        parse_select("SELECT a")


def test_dangling_where_is_error():
    with pytest.raises(SqlSyntaxError, match="Unexpected token in expression: END"):
        parse_select("SELECT a FROM t WHERE")


def test_trailing_tokens_are_error():
    with pytest.raises(SqlSyntaxError, match="Expected END"):
        parse_select("SELECT a FROM t x y")


def test_empty_token_list_is_error():
    with pytest.raises(SqlSyntaxError, match="Unexpected end of input"):
        Parser([]).parse()


def test_parsed_statement_clone_is_equal_and_independent():
    stmt = parse_select(
        "SELECT u.a FROM users u JOIN o ON u.id = o.uid WHERE u.a IN (1, 2) ORDER BY u.a"
    )
    copy = stmt.clone()
    assert copy == stmt
    copy.joins[0].condition.op = "<"
    assert stmt.joins[0].condition.op == "="