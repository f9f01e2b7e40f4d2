"""Widget configuration and render models.

WidgetConfig is persisted with dashboards and travels over the API, so it
is a Pydantic model. Render models are plain dataclasses produced fresh
by the transformer on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ChartKind(str, Enum):
    """Supported visualizations."""

    BAR = "bar"
    LINE = "line"
    AREA = "area"
    SCATTER = "scatter"
    PIE = "pie"
    COUNTER = "counter"
    PIVOT = "pivot"
    TABLE = "table"


class Aggregation(str, Enum):
    """Reductions used by counters and pivot cells."""

    SUM = "sum"
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class WidgetConfig(BaseModel):
    """How a query result maps onto a chart.

    Accepts the editor's camelCase names (``xField``/``xAxis``) as well as
    snake_case on input.
    """

    model_config = ConfigDict(populate_by_name=True)

    chart_kind: ChartKind = Field(
        default=ChartKind.TABLE,
        validation_alias=AliasChoices("chart_kind", "chartKind", "type"),
    )
    x_field: str = Field(
        default="",
        validation_alias=AliasChoices("x_field", "xField", "xAxis"),
    )
    y_field: str = Field(
        default="",
        validation_alias=AliasChoices("y_field", "yField", "yAxis"),
    )
    group_by_field: str | None = Field(
        default=None,
        validation_alias=AliasChoices("group_by_field", "groupByField", "groupBy"),
    )
    aggregation: Aggregation = Aggregation.SUM


@dataclass
class NoData:
    """Nothing renderable for this config."""

    reason: str
    kind: str = "no_data"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "reason": self.reason}


@dataclass
class SeriesChart:
    """Bar, line and area charts: one label and one value per row."""

    kind: str
    labels: list[Any] = field(default_factory=list)
    values: list[int | float] = field(default_factory=list)
    label: str = "value"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "labels": list(self.labels),
            "values": list(self.values),
            "label": self.label,
        }


@dataclass
class ScatterChart:
    points: list[tuple[int | float, int | float]] = field(default_factory=list)
    kind: str = "scatter"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "points": [[x, y] for x, y in self.points]}


@dataclass
class PieChart:
    labels: list[Any] = field(default_factory=list)
    values: list[int | float] = field(default_factory=list)
    kind: str = "pie"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "labels": list(self.labels), "values": list(self.values)}


@dataclass
class CounterValue:
    value: int | float
    aggregation: str
    kind: str = "counter"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "value": self.value, "aggregation": self.aggregation}


@dataclass
class PivotTable:
    """Sparse cross-tabulation.

    Rows are distinct x values and columns are distinct group-by values,
    both in first-seen order. Absent (row, column) pairs have no cell.
    """

    row_values: list[Any] = field(default_factory=list)
    column_values: list[Any] = field(default_factory=list)
    cells: dict[tuple[Any, Any], int | float] = field(default_factory=dict)
    aggregation: str = Aggregation.SUM.value
    kind: str = "pivot"

    def cell(self, row: Any, column: Any) -> int | float | None:
        return self.cells.get((row, column))

    def to_dict(self) -> dict[str, Any]:
        grid: dict[str, dict[str, int | float]] = {}
        for (row, column), value in self.cells.items():
            grid.setdefault(str(row), {})[str(column)] = value
        return {
            "kind": self.kind,
            "rowVals": [str(r) for r in self.row_values],
            "colVals": [str(c) for c in self.column_values],
            "grid": grid,
            "aggregation": self.aggregation,
        }


@dataclass
class TableView:
    columns: list[str] = field(default_factory=list)
    rows: list[list[Any]] = field(default_factory=list)
    kind: str = "table"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "columns": list(self.columns), "rows": [list(r) for r in self.rows]}


RenderModel = NoData | SeriesChart | ScatterChart | PieChart | CounterValue | PivotTable | TableView
