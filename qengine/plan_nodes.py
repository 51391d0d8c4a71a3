"""Nodes of a query execution plan."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Iterator, Optional

from qengine.syntax import Expr, JoinType


class PlanType(enum.Enum):
    SEQ_SCAN = "SEQ_SCAN"
    INDEX_SCAN = "INDEX_SCAN"
    FILTER = "FILTER"
    PROJECTION = "PROJECTION"
    AGGREGATION = "AGGREGATION"
    SORT = "SORT"
    LIMIT = "LIMIT"
    JOIN = "JOIN"
    DISTINCT = "DISTINCT"


class JoinAlgorithm(enum.Enum):
    NESTED_LOOP = "NESTED_LOOP"
    HASH = "HASH"
    MERGE = "MERGE"


@dataclass
class PlanNode:
    """Base plan node; children are the node's inputs."""

    type: ClassVar[PlanType]
    children: list[PlanNode] = field(default_factory=list, kw_only=True)

    def walk(self) -> Iterator[PlanNode]:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children:
            if child is not None:
                yield from child.walk()


@dataclass
class SeqScanNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.SEQ_SCAN
    table: str
    output_qualifier: str
    pushed_predicate: Optional[Expr] = None
    required_columns: list[str] = field(default_factory=list)
    always_empty: bool = False


@dataclass
class IndexScanNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.INDEX_SCAN
    table: str
    output_qualifier: str
    lookup_column: str
    lookup_value: str
    pushed_predicate: Optional[Expr] = None
    required_columns: list[str] = field(default_factory=list)
    always_empty: bool = False


@dataclass
class FilterNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.FILTER
    predicate: Optional[Expr]


@dataclass
class ProjectionNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.PROJECTION
    columns: list[Expr] = field(default_factory=list)


@dataclass
class AggregationNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.AGGREGATION
    group_exprs: list[Expr] = field(default_factory=list)
    having_expr: Optional[Expr] = None
    select_exprs: list[Expr] = field(default_factory=list)
    order_by_expr: str = ""


@dataclass
class SortNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.SORT
    order_by_column: str
    ascending: bool = True


@dataclass
class LimitNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.LIMIT
    limit: int


@dataclass
class JoinNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.JOIN
    join_type: JoinType
    algorithm: JoinAlgorithm
    condition: Optional[Expr] = None


@dataclass
class DistinctNode(PlanNode):
    type: ClassVar[PlanType] = PlanType.DISTINCT