"""Spellbook data models.

Raw events are immutable inputs; daily metric rows are recomputed
projections of them and never stored on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence


def to_utc(ts: datetime) -> datetime:
    """Return an aware UTC datetime (naive values are taken as UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class RawEvent:
    """One immutable per-source event record.

    ``fields`` holds the numeric payload (``gas_fee_usd``, ``amount_usd``,
    ...) next to any descriptive values such as ``tx_hash`` or ``token``.
    """

    source: str
    timestamp: datetime
    event_type: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", self.source.lower())
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    @property
    def day(self) -> date:
        """UTC calendar day of the event."""
        return self.timestamp.date()


@dataclass(frozen=True)
class DailyMetricRow:
    """One (source, day, metric) aggregate."""

    source: str
    date: date
    metric_type: str
    value: int | float
    currency: str | None = None


@dataclass
class QueryResult:
    """Tabular query output.

    Column names are unique and every row has exactly one cell per column.
    """

    columns: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.columns = list(self.columns)
        self.rows = [list(row) for row in self.rows]
        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Duplicate column names: {self.columns}")
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Row {index} has {len(row)} cells, expected {width}"
                )

    def column_index(self, name: str | None) -> int:
        """Position of ``name`` in ``columns``, or -1 when absent."""
        if not name or name not in self.columns:
            return -1
        return self.columns.index(name)

    def to_dict(self) -> dict[str, Any]:
        return {"columns": list(self.columns), "rows": [list(r) for r in self.rows]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QueryResult:
        return cls(columns=list(data.get("columns", [])), rows=list(data.get("rows", [])))

    @classmethod
    def from_metric_rows(
        cls, rows: Sequence[DailyMetricRow], with_currency: bool = False
    ) -> QueryResult:
        """Tabulate rollup rows using the blockchain/block_date column names."""
        columns = ["blockchain", "block_date", "metric_type", "metric_value"]
        if with_currency:
            columns.append("metric_currency")
        table: list[list[Any]] = []
        for row in rows:
            cells: list[Any] = [row.source, row.date.isoformat(), row.metric_type, row.value]
            if with_currency:
                cells.append(row.currency)
            table.append(cells)
        return cls(columns=columns, rows=table)
