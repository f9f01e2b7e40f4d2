"""Visualization transformer and widget render models."""

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
from .transformer import aggregate, transform

__all__ = [
    "Aggregation",
    "ChartKind",
    "CounterValue",
    "NoData",
    "PieChart",
    "PivotTable",
    "RenderModel",
    "ScatterChart",
    "SeriesChart",
    "TableView",
    "WidgetConfig",
    "aggregate",
    "transform",
]
