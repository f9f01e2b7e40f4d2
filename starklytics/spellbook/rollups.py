"""Rollup engine: raw events → daily per-source metric rows.

Responsible for:
- Grouping events by UTC calendar day
- Applying a count or sum-of-field rule with an optional minimum-value filter
- Concatenating per-source rollups across sources
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Sequence

from ..coerce import coerce_number
from .models import DailyMetricRow, RawEvent
from .store import RawEventStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollupRule:
    """How one metric is derived from raw events.

    Attributes:
        metric_type: Name stamped on every output row
        event_type: Raw event type the rule reads
        field: Field to sum; None means count events
        min_value: Events whose field is below this are discarded
        currency: Currency tag for the output rows
    """

    metric_type: str
    event_type: str
    field: str | None = None
    min_value: float | None = None
    currency: str | None = None

    @property
    def is_count(self) -> bool:
        return self.field is None

    def with_min_value(self, min_value: float | None) -> RollupRule:
        return replace(self, min_value=min_value)


TX_COUNT = RollupRule(metric_type="tx_count", event_type="transaction")
GAS_FEES_USD = RollupRule(
    metric_type="gas_fees_usd",
    event_type="transaction",
    field="gas_fee_usd",
    currency="USD",
)
TRANSFER_VOLUME_USD = RollupRule(
    metric_type="transfer_volume_usd",
    event_type="transfer",
    field="amount_usd",
    min_value=1.0,
    currency="USD",
)

BUILTIN_RULES: dict[str, RollupRule] = {
    rule.metric_type: rule for rule in (TX_COUNT, GAS_FEES_USD, TRANSFER_VOLUME_USD)
}


def compute_daily_metric(
    events: Iterable[RawEvent], source: str, rule: RollupRule
) -> list[DailyMetricRow]:
    """Roll events up into one row per UTC day, ascending by date.

    Days with no qualifying events are omitted rather than zero-filled.
    """
    wanted = source.lower()
    by_day: dict[date, list[int | float]] = defaultdict(list)

    for event in events:
        if event.source != wanted or event.event_type != rule.event_type:
            continue
        if rule.is_count:
            by_day[event.day].append(1)
            continue
        value = coerce_number(event.fields.get(rule.field))
        if rule.min_value is not None and value < rule.min_value:
            continue
        by_day[event.day].append(value)

    rows: list[DailyMetricRow] = []
    for day in sorted(by_day):
        values = by_day[day]
        rows.append(
            DailyMetricRow(
                source=wanted,
                date=day,
                metric_type=rule.metric_type,
                value=len(values) if rule.is_count else sum(values),
                currency=rule.currency,
            )
        )
    return rows


class RollupEngine:
    """Compute daily metrics from a raw event store.

    Usage:
        engine = RollupEngine(InMemoryEventStore.with_samples())
        engine.daily("starknet", "tx_count")
        engine.cross_source(["starknet", "ethereum"], "gas_fees_usd")
    """

    def __init__(
        self,
        store: RawEventStore,
        rules: dict[str, RollupRule] | None = None,
    ) -> None:
        self.store = store
        self.rules = dict(rules or BUILTIN_RULES)

    def rule_for(self, metric_type: str) -> RollupRule:
        try:
            return self.rules[metric_type]
        except KeyError:
            logger.warning("Unknown metric type requested: %s", metric_type)
            raise ValueError(f"Unknown metric type: {metric_type}") from None

    def daily(
        self,
        source: str,
        metric_type: str,
        min_value: float | None = None,
    ) -> list[DailyMetricRow]:
        """Daily rows for one source.

        Raises:
            RawStoreUnavailableError: If the store cannot be read.
        """
        rule = self.rule_for(metric_type)
        if min_value is not None:
            rule = rule.with_min_value(min_value)
        return compute_daily_metric(self.store.events(source), source, rule)

    def cross_source(
        self,
        sources: Sequence[str],
        metric_type: str,
        min_value: float | None = None,
    ) -> list[DailyMetricRow]:
        """Concatenate per-source rollups in source-list order.

        Rows keep their source tag; values are never summed across sources.
        """
        rows: list[DailyMetricRow] = []
        for source in sources:
            rows.extend(self.daily(source, metric_type, min_value=min_value))
        return rows
