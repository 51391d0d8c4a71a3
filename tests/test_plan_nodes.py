import pytest

from qengine.plan_nodes import (
    DistinctNode,
    FilterNode,
    JoinAlgorithm,
    JoinNode,
    LimitNode,
    PlanType,
    ProjectionNode,
    SeqScanNode,
)
from qengine.syntax import BinaryExpr, Column, JoinType, Literal


def _tree():
    left = SeqScanNode("users", "u")
    right = SeqScanNode("orders", "o")
    join = JoinNode(
        JoinType.INNER,
        JoinAlgorithm.HASH,
        BinaryExpr(Column("u.id"), "=", Column("o.user_id")),
        children=[left, right],
    )
    filt = FilterNode(BinaryExpr(Column("u.age"), ">", Literal("3")), children=[join])
    limit = LimitNode(10, children=[filt])
    proj = ProjectionNode([Column("u.name")], children=[limit])
    return DistinctNode(children=[proj])


def test_walk_is_preorder():
    types = [n.type for n in _tree().walk()]
    assert types == [
        PlanType.DISTINCT,
        PlanType.PROJECTION,
        PlanType.LIMIT,
        PlanType.FILTER,
        PlanType.JOIN,
        PlanType.SEQ_SCAN,
        PlanType.SEQ_SCAN,
    ]


def test_walk_scan_order_left_then_right():
    scans = [n.table for n in _tree().walk() if n.type == PlanType.SEQ_SCAN]
    assert scans == ["users", "orders"]


def test_walk_leaf_yields_itself_only():
    scan = SeqScanNode("t", "t")
    assert list(scan.walk()) == [scan]


def test_children_lists_are_independent():
    a = SeqScanNode("a", "a")
    b = SeqScanNode("b", "b")
    a.children.append(SeqScanNode("c", "c"))
    assert b.children == []


def test_scan_defaults_and_mutation():
    scan = SeqScanNode("t", "x")
    scan.required_columns.append("id")
    other = SeqScanNode("t", "x")
    assert other.required_columns == []
    assert scan != other


def test_children_is_keyword_only():
    with pytest.raises(TypeError):
        DistinctNode([SeqScanNode("t", "t")])