"""Table and column statistics used for cost estimation."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Optional

Row = dict[str, str]

_HISTOGRAM_BINS = 16
_DECIMAL = re.compile(
    r"[ \t\n\v\f\r]*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_HEX = re.compile(
    r"[ \t\n\v\f\r]*[+-]?0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)(?:p[+-]?\d+)?",
    re.IGNORECASE,
)


@dataclass
class Database:
    """In-memory tables: rows keyed by column name, with optional column schemas."""

    tables: dict[str, list[Row]] = field(default_factory=dict)
    schemas: dict[str, list[str]] = field(default_factory=dict)

    def has_table(self, name: str) -> bool:
        return name in self.tables

    def get_table(self, name: str) -> list[Row]:
        try:
            return self.tables[name]
        except KeyError:
            raise KeyError(f"Table not found: {name}") from None

    def has_schema(self, name: str) -> bool:
        return name in self.schemas

    def get_schema(self, name: str) -> list[str]:
        try:
            return self.schemas[name]
        except KeyError:
            raise KeyError(f"Schema not found: {name}") from None


@dataclass
class NumericHistogram:
    min_value: float
    max_value: float
    bins: list[int]


@dataclass
class ColumnStatistics:
    distinct_count: int = 0
    is_numeric: bool = False
    histogram: Optional[NumericHistogram] = None


@dataclass
class TableStatistics:
    row_count: int = 0
    columns: dict[str, ColumnStatistics] = field(default_factory=dict)


def _parse_number(text: str) -> Optional[float]:
    """Parse the whole string as a number, or return None."""
    if _HEX.fullmatch(text):
        value = float.fromhex(text.strip())
    elif _DECIMAL.fullmatch(text):
        value = float(text)
    else:
        return None
    if math.isinf(value) and "inf" not in text.lower():
        return None
    return value


def _build_histogram(values: list[float], low: float, high: float, bin_count: int) -> list[int]:
    bins = [0] * bin_count
    if not values or bin_count == 0 or not low < high:
        return bins
    span = high - low
    for v in values:
        ratio = (v - low) / span
        if not ratio > 0.0:
            ratio = 0.0
        elif ratio > 1.0:
            ratio = 1.0
        bins[min(int(ratio * bin_count), bin_count - 1)] += 1
    return bins


def _column_statistics(rows: list[Row], column: str) -> ColumnStatistics:
    distinct: set[str] = set()
    numeric = True
    numbers: list[float] = []
    low, high = math.inf, -math.inf

    for row in rows:
        value = row.get(column)
        if not value:
            continue
        distinct.add(value)
        n = _parse_number(value)
        if n is None:
            numeric = False
            continue
        numbers.append(n)
        if n < low:
            low = n
        if high < n:
            high = n

    stats = ColumnStatistics(distinct_count=len(distinct), is_numeric=numeric and bool(numbers))
    if stats.is_numeric:
        stats.histogram = NumericHistogram(
            low, high, _build_histogram(numbers, low, high, _HISTOGRAM_BINS)
        )
    return stats


class StatisticsCatalog:
    """Statistics gathered from every table of a database."""

    def __init__(self, db: Database) -> None:
        self._tables: dict[str, TableStatistics] = {}
        for name, rows in db.tables.items():
            if db.has_schema(name):
                columns = list(db.get_schema(name))
            elif rows:
                columns = sorted(rows[0])
            else:
                columns = []
            self._tables[name] = TableStatistics(
                row_count=len(rows),
                columns={col: _column_statistics(rows, col) for col in columns},
            )

    def get_table(self, table: str) -> Optional[TableStatistics]:
        return self._tables.get(table)

    def row_count_or_default(self, table: str, default: int) -> int:
        stats = self.get_table(table)
        return stats.row_count if stats is not None else default

    def _column(self, table: str, column: str) -> Optional[ColumnStatistics]:
        stats = self.get_table(table)
        return stats.columns.get(column) if stats is not None else None

    def distinct_count(self, table: str, column: str) -> Optional[int]:
        col = self._column(table, column)
        return col.distinct_count if col is not None else None

    def numeric_histogram(self, table: str, column: str) -> Optional[NumericHistogram]:
        col = self._column(table, column)
        return col.histogram if col is not None else None