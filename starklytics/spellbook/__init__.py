"""Spellbook: raw events → daily rollups → query results.

Structured into:
- models.py: RawEvent, DailyMetricRow, QueryResult
- store.py: Raw event store adapters (memory, JSONL)
- rollups.py: Daily rollup engine and cross-source aggregation
- dispatcher.py: Ordered pattern dispatch of free-text queries
"""

from .dispatcher import QueryDispatcher, QueryIntent, default_intents, extract_sources
from .models import DailyMetricRow, QueryResult, RawEvent
from .rollups import BUILTIN_RULES, RollupEngine, RollupRule, compute_daily_metric
from .store import InMemoryEventStore, JSONLEventStore, RawEventStore, sample_events

__all__ = [
    "QueryDispatcher",
    "QueryIntent",
    "default_intents",
    "extract_sources",
    "DailyMetricRow",
    "QueryResult",
    "RawEvent",
    "BUILTIN_RULES",
    "RollupEngine",
    "RollupRule",
    "compute_daily_metric",
    "InMemoryEventStore",
    "JSONLEventStore",
    "RawEventStore",
    "sample_events",
]
