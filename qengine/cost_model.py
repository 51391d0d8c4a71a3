"""Cardinality and cost estimates used by the planner."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from qengine.plan_nodes import JoinAlgorithm
from qengine.syntax import JoinType

if TYPE_CHECKING:
    from qengine.statistics import StatisticsCatalog

DEFAULT_SELECTIVITY = 0.1
_MIN_SELECTIVITY = 1e-6
_SMALL_SIDE_ROWS = 32.0
_SMALL_PRODUCT_ROWS = 4096.0
_MERGE_MIN_ROWS = 256.0


def _clamp_selectivity(selectivity: float) -> float:
    if not math.isfinite(selectivity):
        return DEFAULT_SELECTIVITY
    return min(1.0, max(_MIN_SELECTIVITY, selectivity))


def estimate_equality_filter_selectivity(
    stats: StatisticsCatalog, table: str, column: str
) -> float:
    """Selectivity of ``column = constant`` on ``table``."""
    ndv = stats.distinct_count(table, column)
    if not ndv:
        return DEFAULT_SELECTIVITY
    return _clamp_selectivity(1.0 / ndv)


def estimate_equality_join_selectivity(
    stats: StatisticsCatalog,
    left_table: str,
    left_column: str,
    right_table: str,
    right_column: str,
) -> float:
    """Selectivity of an equality join between two columns."""
    left_ndv = stats.distinct_count(left_table, left_column)
    right_ndv = stats.distinct_count(right_table, right_column)
    if not left_ndv or not right_ndv:
        return DEFAULT_SELECTIVITY
    return _clamp_selectivity(1.0 / max(left_ndv, right_ndv))


def estimate_join_output_rows(left_rows: float, right_rows: float, selectivity: float) -> float:
    """Estimated number of rows produced by a join; never below one."""
    if not math.isfinite(left_rows) or left_rows < 0.0:
        left_rows = 0.0
    if not math.isfinite(right_rows) or right_rows < 0.0:
        right_rows = 0.0
    return max(1.0, left_rows * right_rows * _clamp_selectivity(selectivity))


def choose_join_algorithm(
    left_rows: float,
    right_rows: float,
    equi_join: bool,
    left_sorted: bool,
    right_sorted: bool,
    join_type: JoinType,
) -> JoinAlgorithm:
    """Pick the physical join algorithm for the given input sizes and join shape."""
    if join_type is JoinType.CROSS or not equi_join:
        return JoinAlgorithm.NESTED_LOOP
    if join_type is not JoinType.INNER:
        return JoinAlgorithm.HASH

    min_side = min(left_rows, right_rows)
    if min_side <= _SMALL_SIDE_ROWS or left_rows * right_rows <= _SMALL_PRODUCT_ROWS:
        return JoinAlgorithm.NESTED_LOOP
    if left_sorted and right_sorted and min_side >= _MERGE_MIN_ROWS:
        return JoinAlgorithm.MERGE
    return JoinAlgorithm.HASH