"""Constant folding and expression inspection helpers."""

from __future__ import annotations

import operator
import re
from typing import Callable, Optional

from qengine.syntax import BinaryExpr, Column, ExistsExpr, Expr, InExpr, InListExpr, Literal

AGGREGATE_FUNCTIONS = frozenset({"COUNT", "SUM", "AVG", "MIN", "MAX", "COUNT_DISTINCT"})

_WHITESPACE = " \t\n\v\f\r"
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_COMPARATORS: dict[str, Callable[[object, object], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}
_LOGICAL = ("NOT", "AND", "OR")


def _as_number(text: str) -> Optional[float]:
    stripped = text.strip(_WHITESPACE)
    return float(stripped) if _NUMBER.fullmatch(stripped) else None


def compare_values(left: str, op: str, right: str) -> bool:
    """Compare two values, numerically when both are numbers, else as text."""
    try:
        compare = _COMPARATORS[op]
    except KeyError:
        raise ValueError(f"Unsupported comparison operator: {op}") from None
    lnum, rnum = _as_number(left), _as_number(right)
    if lnum is not None and rnum is not None:
        return compare(lnum, rnum)
    return compare(left, right)


def truthy(raw: str) -> bool:
    """Interpret a scalar value as a boolean."""
    v = "".join(c for c in raw if c not in _WHITESPACE).lower()
    return v not in ("", "0", "false", "f")


def is_aggregate_reference(name: str) -> bool:
    """Whether ``name`` has the form FN(args) with a known aggregate function."""
    left = name.find("(")
    right = name.rfind(")")
    if left < 0 or right < 0 or right <= left + 1:
        return False
    return name[:left] in AGGREGATE_FUNCTIONS


def split_comma_top_level(text: str) -> list[str]:
    """Split on commas outside parentheses and quotes, trimming each part."""
    parts: list[str] = []
    cur: list[str] = []
    depth = 0
    in_quote = False
    i = 0
    while i < len(text):
        c = text[i]
        if c == "'":
            cur.append(c)
            if in_quote and text[i + 1 : i + 2] == "'":
                cur.append("'")
                i += 2
                continue
            in_quote = not in_quote
        elif not in_quote and c == "(":
            depth += 1
            cur.append(c)
        elif not in_quote and c == ")":
            depth -= 1
            cur.append(c)
        elif not in_quote and c == "," and depth == 0:
            parts.append("".join(cur).strip(_WHITESPACE))
            cur = []
        else:
            cur.append(c)
        i += 1
    parts.append("".join(cur).strip(_WHITESPACE))
    return parts


def contains_subquery(expr: Optional[Expr]) -> bool:
    """Whether the expression contains an EXISTS or IN (subquery)."""
    if expr is None:
        return False
    if isinstance(expr, (ExistsExpr, InExpr)):
        return True
    if isinstance(expr, BinaryExpr):
        return contains_subquery(expr.left) or contains_subquery(expr.right)
    if isinstance(expr, InListExpr):
        return contains_subquery(expr.value) or any(contains_subquery(i) for i in expr.items)
    return False


def _bool_text(value: bool) -> str:
    return "1" if value else "0"


def try_eval_const_scalar(expr: Optional[Expr]) -> Optional[str]:
    """Evaluate an expression to a constant value, or None if it is not constant."""
    if expr is None:
        return None
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, InListExpr) or (isinstance(expr, BinaryExpr) and expr.op in _LOGICAL):
        pred = try_eval_const_predicate(expr)
        return None if pred is None else _bool_text(pred)
    if isinstance(expr, BinaryExpr):
        left = try_eval_const_scalar(expr.left)
        right = try_eval_const_scalar(expr.right)
        if left is None or right is None:
            return None
        return _bool_text(compare_values(left, expr.op, right))
    return None


def try_eval_const_predicate(expr: Optional[Expr]) -> Optional[bool]:
    """Evaluate an expression to a constant truth value, or None if unknown."""
    if expr is None:
        return True

    if isinstance(expr, InListExpr):
        lhs = try_eval_const_scalar(expr.value)
        if lhs is None:
            return None
        for item in expr.items:
            rhs = try_eval_const_scalar(item)
            if rhs is None:
                return None
            if lhs == rhs:
                return True
        return False

    if isinstance(expr, BinaryExpr):
        if expr.op == "NOT":
            inner = try_eval_const_predicate(expr.left)
            return None if inner is None else not inner
        if expr.op == "AND":
            left = try_eval_const_predicate(expr.left)
            right = try_eval_const_predicate(expr.right)
            if left is False or right is False:
                return False
            if left is not None and right is not None:
                return left and right
            return None
        if expr.op == "OR":
            left = try_eval_const_predicate(expr.left)
            right = try_eval_const_predicate(expr.right)
            if left is True or right is True:
                return True
            if left is not None and right is not None:
                return left or right
            return None
        lval = try_eval_const_scalar(expr.left)
        rval = try_eval_const_scalar(expr.right)
        if lval is None or rval is None:
            return None
        return compare_values(lval, expr.op, rval)

    scalar = try_eval_const_scalar(expr)
    return None if scalar is None else truthy(scalar)


def _bool_literal(value: bool) -> Literal:
    return Literal(_bool_text(value))


def simplify_expr(expr: Optional[Expr]) -> Optional[Expr]:
    """Fold constant sub-expressions; may reuse and modify the given nodes."""
    if expr is None:
        return None

    if isinstance(expr, BinaryExpr):
        expr.left = simplify_expr(expr.left)
        expr.right = simplify_expr(expr.right)
        left_const = try_eval_const_predicate(expr.left)
        right_const = try_eval_const_predicate(expr.right)

        if expr.op == "NOT":
            return expr if left_const is None else _bool_literal(not left_const)

        if expr.op == "AND":
            if left_const is False or right_const is False:
                return _bool_literal(False)
            if left_const is True:
                return expr.right
            if right_const is True:
                return expr.left
            return expr

        if expr.op == "OR":
            if left_const is True or right_const is True:
                return _bool_literal(True)
            if left_const is False:
                return expr.right
            if right_const is False:
                return expr.left
            return expr

        left_scalar = try_eval_const_scalar(expr.left)
        right_scalar = try_eval_const_scalar(expr.right)
        if left_scalar is not None and right_scalar is not None:
            return _bool_literal(compare_values(left_scalar, expr.op, right_scalar))
        return expr

    if isinstance(expr, InListExpr):
        expr.value = simplify_expr(expr.value)
        expr.items = [simplify_expr(item) for item in expr.items]
        pred = try_eval_const_predicate(expr)
        return expr if pred is None else _bool_literal(pred)

    return expr


__all__ = [
    "Column",
    "compare_values",
    "contains_subquery",
    "is_aggregate_reference",
    "simplify_expr",
    "split_comma_top_level",
    "truthy",
    "try_eval_const_predicate",
    "try_eval_const_scalar",
]