"""Rule-based rewrites of query plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from qengine.plan_nodes import (
    AggregationNode,
    FilterNode,
    IndexScanNode,
    JoinNode,
    PlanNode,
    PlanType,
    ProjectionNode,
    SeqScanNode,
    SortNode,
)
from qengine.simplify import (
    contains_subquery,
    is_aggregate_reference,
    simplify_expr,
    split_comma_top_level,
    try_eval_const_predicate,
)
from qengine.syntax import (
    BinaryExpr,
    Column,
    ExistsExpr,
    Expr,
    InExpr,
    InListExpr,
    JoinType,
    Literal,
)

if TYPE_CHECKING:
    from qengine.statistics import Database

_INDEX_SCAN_MIN_ROWS = 256
_LEFT_PUSHABLE = (JoinType.INNER, JoinType.LEFT, JoinType.CROSS)
_RIGHT_PUSHABLE = (JoinType.INNER, JoinType.RIGHT, JoinType.CROSS)


def _split_qualified(name: str) -> Optional[tuple[str, str]]:
    qualifier, dot, column = name.partition(".")
    if not dot or not qualifier or not column:
        return None
    return qualifier, column


def _false_literal() -> Literal:
    return Literal("0")


def _collect_output_qualifiers(node: Optional[PlanNode]) -> set[str]:
    if node is None:
        return set()
    if isinstance(node, SeqScanNode):
        return {node.output_qualifier}
    found: set[str] = set()
    for child in node.children:
        found |= _collect_output_qualifiers(child)
    return found


def _flatten_and(expr: Optional[Expr]) -> list[Expr]:
    if expr is None:
        return []
    if isinstance(expr, BinaryExpr) and expr.op == "AND":
        return _flatten_and(expr.left) + _flatten_and(expr.right)
    return [expr]


def _and_chain(exprs: list[Expr]) -> Optional[Expr]:
    if not exprs:
        return None
    root = exprs[0]
    for expr in exprs[1:]:
        root = BinaryExpr(root, "AND", expr)
    return root


@dataclass
class _SideRefs:
    left: bool = False
    right: bool = False
    unknown: bool = False
    subquery: bool = False


def _collect_side_refs(
    expr: Optional[Expr], left_quals: set[str], right_quals: set[str], refs: _SideRefs
) -> None:
    if expr is None or refs.subquery:
        return
    if isinstance(expr, (ExistsExpr, InExpr)):
        refs.subquery = True
        return
    if isinstance(expr, Column):
        parts = _split_qualified(expr.name)
        if parts is None:
            refs.unknown = True
            return
        in_left = parts[0] in left_quals
        in_right = parts[0] in right_quals
        if in_left and not in_right:
            refs.left = True
        elif in_right and not in_left:
            refs.right = True
        else:
            refs.unknown = True
        return
    if isinstance(expr, BinaryExpr):
        _collect_side_refs(expr.left, left_quals, right_quals, refs)
        _collect_side_refs(expr.right, left_quals, right_quals, refs)
        return
    if isinstance(expr, InListExpr):
        _collect_side_refs(expr.value, left_quals, right_quals, refs)
        for item in expr.items:
            _collect_side_refs(item, left_quals, right_quals, refs)


def _predicate_side(expr: Expr, left_quals: set[str], right_quals: set[str]) -> str:
    refs = _SideRefs()
    _collect_side_refs(expr, left_quals, right_quals, refs)
    if refs.subquery or refs.unknown:
        return "unknown"
    if refs.left and refs.right:
        return "both"
    if refs.left:
        return "left"
    if refs.right:
        return "right"
    return "none"


def _attach_filter(child: Optional[PlanNode], predicate: Optional[Expr]) -> Optional[PlanNode]:
    if predicate is None:
        return child
    if isinstance(child, FilterNode):
        child.predicate = BinaryExpr(child.predicate, "AND", predicate)
        return child
    return FilterNode(predicate, children=[child])


@dataclass
class _ColumnRefs:
    qualified: dict[str, set[str]] = field(default_factory=dict)
    bare: set[str] = field(default_factory=set)
    has_star: bool = False
    has_subquery: bool = False

    def add_name(self, name: str) -> None:
        if not name:
            return
        if name == "*":
            self.has_star = True
            return
        if is_aggregate_reference(name):
            args = name[name.find("(") + 1 : name.rfind(")")]
            for arg in split_comma_top_level(args):
                if arg and arg != "*":
                    self.add_name(arg)
            return
        parts = _split_qualified(name)
        if parts is not None:
            self.qualified.setdefault(parts[0], set()).add(parts[1])
            return
        self.bare.add(name)

    def add_expr(self, expr: Optional[Expr]) -> None:
        if expr is None:
            return
        if isinstance(expr, (ExistsExpr, InExpr)):
            self.has_subquery = True
        elif isinstance(expr, Column):
            self.add_name(expr.name)
        elif isinstance(expr, BinaryExpr):
            self.add_expr(expr.left)
            self.add_expr(expr.right)
        elif isinstance(expr, InListExpr):
            self.add_expr(expr.value)
            for item in expr.items:
                self.add_expr(item)

    def add_exprs(self, exprs: Iterable[Optional[Expr]]) -> None:
        for expr in exprs:
            self.add_expr(expr)

    def columns_for(self, qualifier: str) -> set[str]:
        return self.qualified.get(qualifier, set()) | self.bare


def _collect_node_columns(node: PlanNode, refs: _ColumnRefs) -> None:
    if isinstance(node, SeqScanNode):
        refs.add_expr(node.pushed_predicate)
    elif isinstance(node, IndexScanNode):
        refs.add_name(node.lookup_column)
        refs.add_expr(node.pushed_predicate)
    elif isinstance(node, FilterNode):
        refs.add_expr(node.predicate)
    elif isinstance(node, ProjectionNode):
        refs.add_exprs(node.columns)
    elif isinstance(node, AggregationNode):
        refs.add_exprs(node.group_exprs)
        refs.add_exprs(node.select_exprs)
        refs.add_expr(node.having_expr)
        refs.add_name(node.order_by_expr)
    elif isinstance(node, SortNode):
        refs.add_name(node.order_by_column)
    elif isinstance(node, JoinNode):
        refs.add_expr(node.condition)


def _extract_lookup_equality(
    expr: Optional[Expr], scan: SeqScanNode
) -> Optional[tuple[str, str]]:
    if not isinstance(expr, BinaryExpr) or expr.op not in ("=", "=="):
        return None

    def normalize(name: str) -> Optional[str]:
        if "." not in name:
            return name
        parts = _split_qualified(name)
        if parts is None or parts[0] != scan.output_qualifier:
            return None
        return parts[1]

    left, right = expr.left, expr.right
    if isinstance(left, Column) and isinstance(right, Literal):
        column = normalize(left.name)
        return None if column is None else (column, right.value)
    if isinstance(right, Column) and isinstance(left, Literal):
        column = normalize(right.name)
        return None if column is None else (column, left.value)
    return None


class PlanOptimizer:
    """Applies folding, filter merging, predicate pushdown, pruning and access-path choice."""

    def optimize(self, root: Optional[PlanNode], db: Optional[Database]) -> Optional[PlanNode]:
        """Return the optimized plan; the given nodes may be reused and modified."""
        if root is None:
            return None
        root = self.fold_and_eliminate(root)
        root = self.combine_filters(root)
        root = self.pushdown_predicates(root)
        self.apply_column_pruning(root)
        return self.choose_access_paths(root, db)

    def _rewrite_children(self, node: PlanNode, rewrite) -> None:
        node.children = [rewrite(child) if child is not None else None for child in node.children]

    def fold_and_eliminate(self, node: Optional[PlanNode]) -> Optional[PlanNode]:
        """Fold constant filter predicates and drop filters that are always true."""
        if node is None:
            return None
        self._rewrite_children(node, self.fold_and_eliminate)
        if not isinstance(node, FilterNode):
            return node

        node.predicate = simplify_expr(node.predicate)
        pred = try_eval_const_predicate(node.predicate)
        if pred is None or not node.children:
            return node

        child = node.children[0]
        if pred:
            return child
        if isinstance(child, SeqScanNode):
            child.always_empty = True
            return child
        node.children = [child]
        node.predicate = _false_literal()
        return node

    def combine_filters(self, node: Optional[PlanNode]) -> Optional[PlanNode]:
        """Merge a filter directly above another filter into one."""
        if node is None:
            return None
        self._rewrite_children(node, self.combine_filters)
        if not isinstance(node, FilterNode) or len(node.children) != 1:
            return node
        lower = node.children[0]
        if not isinstance(lower, FilterNode) or len(lower.children) != 1 or lower.children[0] is None:
            return node
        combined = BinaryExpr(lower.predicate, "AND", node.predicate)
        return FilterNode(combined, children=[lower.children[0]])

    def pushdown_predicates(self, node: Optional[PlanNode]) -> Optional[PlanNode]:
        """Push filter conjuncts through joins and into sequential scans."""
        if node is None:
            return None
        self._rewrite_children(node, self.pushdown_predicates)
        if not isinstance(node, FilterNode):
            return node

        if (
            len(node.children) == 1
            and isinstance(node.children[0], JoinNode)
            and node.predicate is not None
        ):
            join = node.children[0]
            left_quals = _collect_output_qualifiers(join.children[0])
            right_quals = _collect_output_qualifiers(join.children[1])

            push_left: list[Expr] = []
            push_right: list[Expr] = []
            keep: list[Expr] = []
            for conjunct in _flatten_and(node.predicate):
                side = _predicate_side(conjunct, left_quals, right_quals)
                if side == "left" and join.join_type in _LEFT_PUSHABLE:
                    push_left.append(conjunct)
                elif side == "right" and join.join_type in _RIGHT_PUSHABLE:
                    push_right.append(conjunct)
                else:
                    keep.append(conjunct)

            if push_left:
                join.children[0] = _attach_filter(join.children[0], _and_chain(push_left))
            if push_right:
                join.children[1] = _attach_filter(join.children[1], _and_chain(push_right))
            join.children[0] = self.pushdown_predicates(join.children[0])
            join.children[1] = self.pushdown_predicates(join.children[1])

            if not keep:
                return join
            node.children = [join]
            node.predicate = _and_chain(keep)

        if len(node.children) != 1 or not isinstance(node.children[0], SeqScanNode):
            return node
        if contains_subquery(node.predicate):
            return node

        scan = node.children[0]
        if scan.pushed_predicate is not None:
            scan.pushed_predicate = BinaryExpr(scan.pushed_predicate, "AND", node.predicate)
        else:
            scan.pushed_predicate = node.predicate
        return scan

    def apply_column_pruning(self, root: Optional[PlanNode]) -> None:
        """Record on each scan the columns that the plan above it needs."""
        if root is None:
            return
        refs = _ColumnRefs()
        for node in root.walk():
            _collect_node_columns(node, refs)
        if refs.has_star or refs.has_subquery:
            return
        for node in root.walk():
            if isinstance(node, (SeqScanNode, IndexScanNode)):
                cols = refs.columns_for(node.output_qualifier)
                if cols:
                    node.required_columns = sorted(cols)

    def choose_access_paths(
        self, node: Optional[PlanNode], db: Optional[Database]
    ) -> Optional[PlanNode]:
        """Replace large scans filtered by a single equality with index scans."""
        if node is None:
            return None
        self._rewrite_children(node, lambda child: self.choose_access_paths(child, db))

        if db is None or not isinstance(node, SeqScanNode):
            return node
        if node.always_empty:
            return node
        if node.pushed_predicate is None or contains_subquery(node.pushed_predicate):
            return node
        if not db.has_table(node.table):
            return node
        if len(db.get_table(node.table)) < _INDEX_SCAN_MIN_ROWS:
            return node

        lookup = _extract_lookup_equality(node.pushed_predicate, node)
        if lookup is None:
            return node
        column, value = lookup
        return IndexScanNode(
            node.table,
            node.output_qualifier,
            column,
            value,
            required_columns=list(node.required_columns),
            always_empty=node.always_empty,
        )