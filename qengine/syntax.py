"""Syntax tree for SQL expressions and statements."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Optional


class Expr(ABC):
    """Base class of all expression nodes."""

    @abstractmethod
    def clone(self) -> Expr:
        """Return a deep copy of this expression."""


def _clone_opt(expr: Optional[Expr]) -> Optional[Expr]:
    return expr.clone() if expr is not None else None


def _clone_list(exprs: list[Optional[Expr]]) -> list[Optional[Expr]]:
    return [_clone_opt(e) for e in exprs]


@dataclass
class Column(Expr):
    """A column reference, possibly qualified or an aggregate call such as COUNT(x)."""

    name: str

    def clone(self) -> Column:
        return Column(self.name)


@dataclass
class Literal(Expr):
    """A literal value, kept as its textual form."""

    value: str

    def clone(self) -> Literal:
        return Literal(self.value)


@dataclass
class BinaryExpr(Expr):
    """A binary operation; NOT is encoded with an empty literal on the right."""

    left: Optional[Expr]
    op: str
    right: Optional[Expr]

    def clone(self) -> BinaryExpr:
        return BinaryExpr(_clone_opt(self.left), self.op, _clone_opt(self.right))


@dataclass
class ExistsExpr(Expr):
    """EXISTS (subquery)."""

    subquery: Optional[SelectStmt]

    def clone(self) -> ExistsExpr:
        return ExistsExpr(self.subquery.clone() if self.subquery is not None else None)


@dataclass
class InExpr(Expr):
    """value IN (subquery)."""

    value: Optional[Expr]
    subquery: Optional[SelectStmt]

    def clone(self) -> InExpr:
        return InExpr(
            _clone_opt(self.value),
            self.subquery.clone() if self.subquery is not None else None,
        )


@dataclass
class InListExpr(Expr):
    """value IN (item, item, ...)."""

    value: Optional[Expr]
    items: list[Optional[Expr]] = field(default_factory=list)

    def clone(self) -> InListExpr:
        return InListExpr(_clone_opt(self.value), _clone_list(self.items))


@dataclass
class TableRef:
    """A table in a FROM or JOIN clause with an optional alias."""

    table: str = ""
    alias: str = ""

    def effective_name(self) -> str:
        """The name columns of this table are qualified with."""
        return self.alias if self.alias else self.table


class JoinType(enum.Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


@dataclass
class JoinClause:
    type: JoinType = JoinType.INNER
    right: TableRef = field(default_factory=TableRef)
    condition: Optional[Expr] = None


@dataclass
class SelectStmt:
    """A SELECT statement."""

    from_: TableRef = field(default_factory=TableRef)
    joins: list[JoinClause] = field(default_factory=list)
    distinct: bool = False
    columns: list[Optional[Expr]] = field(default_factory=list)
    table: str = ""
    where: Optional[Expr] = None
    order_by: str = ""
    order_by_ascending: bool = True
    group_by: list[Optional[Expr]] = field(default_factory=list)
    having: Optional[Expr] = None
    limit: int = -1

    def clone(self) -> SelectStmt:
        """Return a deep copy of this statement."""
        return SelectStmt(
            from_=replace(self.from_),
            joins=[
                JoinClause(j.type, replace(j.right), _clone_opt(j.condition))
                for j in self.joins
            ],
            distinct=self.distinct,
            columns=_clone_list(self.columns),
            table=self.table,
            where=_clone_opt(self.where),
            order_by=self.order_by,
            order_by_ascending=self.order_by_ascending,
            group_by=_clone_list(self.group_by),
            having=_clone_opt(self.having),
            limit=self.limit,
        )


@dataclass
class ColumnDef:
    name: str = ""
    type: str = ""
    primary_key: bool = False
    not_null: bool = False
    unique: bool = False
    foreign_key: str = ""
    check_expr: str = ""


@dataclass
class CreateTableStmt:
    table: str = ""
    if_not_exists: bool = False
    columns: list[ColumnDef] = field(default_factory=list)
    table_checks: list[str] = field(default_factory=list)


class AlterActionKind(enum.Enum):
    ADD_COLUMN = "ADD_COLUMN"
    DROP_COLUMN = "DROP_COLUMN"
    RENAME_COLUMN = "RENAME_COLUMN"
    ALTER_COLUMN_TYPE = "ALTER_COLUMN_TYPE"
    ADD_CONSTRAINT = "ADD_CONSTRAINT"


class AlterConstraintKind(enum.Enum):
    PRIMARY_KEY = "PRIMARY_KEY"
    UNIQUE = "UNIQUE"
    FOREIGN_KEY = "FOREIGN_KEY"
    CHECK = "CHECK"


@dataclass
class AlterTableStmt:
    table: str = ""
    action: Optional[AlterActionKind] = None
    column_def: Optional[ColumnDef] = None
    column_name: str = ""
    new_column_name: str = ""
    new_type: str = ""
    constraint_kind: Optional[AlterConstraintKind] = None
    constraint_columns: list[str] = field(default_factory=list)
    referenced_table: str = ""
    referenced_column: str = ""
    check_expr: str = ""


@dataclass
class InsertStmt:
    table: str = ""
    columns: list[str] = field(default_factory=list)
    value_rows: list[list[Expr]] = field(default_factory=list)


@dataclass
class UpdateAssignment:
    column: str = ""
    value: Optional[Expr] = None


@dataclass
class UpdateStmt:
    table: str = ""
    assignments: list[UpdateAssignment] = field(default_factory=list)
    where: Optional[Expr] = None


@dataclass
class DeleteStmt:
    table: str = ""
    where: Optional[Expr] = None


class StatementType(enum.Enum):
    SELECT = "SELECT"
    PATH_SELECT = "PATH_SELECT"
    CREATE_TABLE = "CREATE_TABLE"
    ALTER_TABLE = "ALTER_TABLE"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class Statement:
    """Any parsed statement; exactly one of the payload fields is set."""

    type: StatementType
    select: Optional[SelectStmt] = None
    create_table: Optional[CreateTableStmt] = None
    alter_table: Optional[AlterTableStmt] = None
    insert: Optional[InsertStmt] = None
    update: Optional[UpdateStmt] = None
    delete: Optional[DeleteStmt] = None