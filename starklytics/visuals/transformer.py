"""Visualization transformer: QueryResult + WidgetConfig → render model.

Responsible for:
- Resolving configured fields against the result's columns
- Coercing cells to numbers (unparseable cells count as 0)
- Building the per-kind render model; never raising on bad input
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ..coerce import coerce_number
from ..spellbook.models import QueryResult
from .models import (
    Aggregation,
    ChartKind,
    CounterValue,
    NoData,
    PieChart,
    PivotTable,
    RenderModel,
    ScatterChart,
    SeriesChart,
    TableView,
    WidgetConfig,
)

logger = logging.getLogger(__name__)

_SERIES_KINDS = {ChartKind.BAR, ChartKind.LINE, ChartKind.AREA}


def aggregate(values: Iterable[Any], aggregation: Aggregation) -> int | float:
    """Reduce values to one number.

    ``count`` counts values without looking at them; the other reductions
    coerce first. ``avg``, ``min`` and ``max`` return 0 on an empty input.
    """
    items = list(values)
    if aggregation is Aggregation.COUNT:
        return len(items)
    numbers = [coerce_number(v) for v in items]
    if aggregation is Aggregation.SUM:
        return sum(numbers)
    if not numbers:
        return 0
    if aggregation is Aggregation.AVG:
        return sum(numbers) / len(numbers)
    if aggregation is Aggregation.MIN:
        return min(numbers)
    return max(numbers)


def _required_fields(config: WidgetConfig) -> list[str]:
    kind = config.chart_kind
    counting = config.aggregation is Aggregation.COUNT
    if kind in _SERIES_KINDS or kind in (ChartKind.SCATTER, ChartKind.PIE):
        return ["x_field", "y_field"]
    if kind is ChartKind.COUNTER:
        return [] if counting else ["y_field"]
    if kind is ChartKind.PIVOT:
        return ["x_field", "group_by_field"] if counting else ["x_field", "group_by_field", "y_field"]
    return []


def _resolve(result: QueryResult, config: WidgetConfig) -> dict[str, int] | NoData:
    """Column index per field name, or NoData when one cannot be resolved."""
    indexes: dict[str, int] = {}
    required = _required_fields(config)
    for attr in ("x_field", "y_field", "group_by_field"):
        name = getattr(config, attr)
        if not name:
            if attr in required:
                return NoData(reason=f"{attr} is not configured")
            continue
        index = result.column_index(name)
        if index == -1:
            return NoData(reason=f"column '{name}' not in result")
        indexes[attr] = index
    return indexes


def _accumulate(current: int | float | None, value: Any, aggregation: Aggregation) -> int | float:
    # avg accumulates a running sum in pivot cells, unlike the counter mean.
    if aggregation is Aggregation.COUNT:
        return (current or 0) + 1
    number = coerce_number(value)
    if current is None:
        return number
    if aggregation is Aggregation.MIN:
        return min(current, number)
    if aggregation is Aggregation.MAX:
        return max(current, number)
    return current + number


def _pivot(result: QueryResult, config: WidgetConfig, indexes: dict[str, int]) -> PivotTable:
    x_idx = indexes["x_field"]
    g_idx = indexes["group_by_field"]
    y_idx = indexes.get("y_field")
    pivot = PivotTable(aggregation=config.aggregation.value)
    seen_rows: set[Any] = set()
    seen_cols: set[Any] = set()

    for row in result.rows:
        row_key = row[x_idx]
        col_key = row[g_idx]
        if row_key not in seen_rows:
            seen_rows.add(row_key)
            pivot.row_values.append(row_key)
        if col_key not in seen_cols:
            seen_cols.add(col_key)
            pivot.column_values.append(col_key)
        value = row[y_idx] if y_idx is not None else None
        pivot.cells[(row_key, col_key)] = _accumulate(
            pivot.cells.get((row_key, col_key)), value, config.aggregation
        )
    return pivot


def transform(result: QueryResult, config: WidgetConfig) -> RenderModel:
    """Build the render model for one widget.

    Identical inputs always give identical output. Unhashable x or
    group-by cells in a pivot yield NoData instead of raising.
    """
    resolved = _resolve(result, config)
    if isinstance(resolved, NoData):
        return resolved
    indexes = resolved
    kind = config.chart_kind
    x_idx = indexes.get("x_field")
    y_idx = indexes.get("y_field")

    if kind in _SERIES_KINDS:
        return SeriesChart(
            kind=kind.value,
            labels=[row[x_idx] for row in result.rows],
            values=[coerce_number(row[y_idx]) for row in result.rows],
            label=config.y_field or "value",
        )
    if kind is ChartKind.PIE:
        return PieChart(
            labels=[row[x_idx] for row in result.rows],
            values=[coerce_number(row[y_idx]) for row in result.rows],
        )
    if kind is ChartKind.SCATTER:
        return ScatterChart(
            points=[(coerce_number(row[x_idx]), coerce_number(row[y_idx])) for row in result.rows]
        )
    if kind is ChartKind.COUNTER:
        if config.aggregation is Aggregation.COUNT:
            return CounterValue(value=len(result.rows), aggregation=config.aggregation.value)
        return CounterValue(
            value=aggregate((row[y_idx] for row in result.rows), config.aggregation),
            aggregation=config.aggregation.value,
        )
    if kind is ChartKind.PIVOT:
        try:
            return _pivot(result, config, indexes)
        except TypeError as e:
            logger.warning("Pivot keys are not hashable: %s", e)
            return NoData(reason="pivot keys must be scalar values")
    return TableView(columns=list(result.columns), rows=[list(r) for r in result.rows])
