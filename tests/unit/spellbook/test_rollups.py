"""Tests for the daily rollup engine."""

import logging
from datetime import date

import pytest

from starklytics.errors import RawStoreUnavailableError
from starklytics.spellbook import (
    BUILTIN_RULES,
    InMemoryEventStore,
    RollupEngine,
    RollupRule,
    compute_daily_metric,
)
from tests.testing_utils import make_event


class TestCountRollup:
    """Event counts per UTC day."""

    def test_count_matches_events_per_day(self, engine: RollupEngine) -> None:
        """Two starknet transactions on the 15th, one on the 16th."""
        rows = engine.daily("starknet", "tx_count")

        assert [(r.date, r.value) for r in rows] == [
            (date(2024, 1, 15), 2),
            (date(2024, 1, 16), 1),
        ]
        assert all(r.metric_type == "tx_count" for r in rows)
        assert all(r.source == "starknet" for r in rows)

    def test_rows_sorted_ascending(self) -> None:
        """Output is ordered by day regardless of input order."""
        events = [
            make_event("starknet", "2024-01-20T00:00:00Z", "transaction"),
            make_event("starknet", "2024-01-18T00:00:00Z", "transaction"),
            make_event("starknet", "2024-01-19T00:00:00Z", "transaction"),
        ]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["tx_count"])

        assert [r.date.day for r in rows] == [18, 19, 20]

    def test_empty_days_omitted(self) -> None:
        """Days with no events produce no row."""
        events = [
            make_event("starknet", "2024-01-15T00:00:00Z", "transaction"),
            make_event("starknet", "2024-01-17T00:00:00Z", "transaction"),
        ]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["tx_count"])

        assert [r.date.day for r in rows] == [15, 17]

    def test_day_boundary_is_utc(self) -> None:
        """A late-evening event in UTC-5 falls on the next UTC day."""
        events = [make_event("starknet", "2024-01-15T22:00:00-05:00", "transaction")]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["tx_count"])

        assert rows[0].date == date(2024, 1, 16)

    def test_other_sources_and_types_ignored(self) -> None:
        """Only events for the requested source and event type count."""
        events = [
            make_event("starknet", "2024-01-15T00:00:00Z", "transaction"),
            make_event("ethereum", "2024-01-15T00:00:00Z", "transaction"),
            make_event("starknet", "2024-01-15T00:00:00Z", "transfer", amount_usd=5),
        ]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["tx_count"])

        assert len(rows) == 1
        assert rows[0].value == 1


class TestSumRollup:
    """Sum-of-field rollups."""

    def test_gas_fees_sum_per_day(self, engine: RollupEngine) -> None:
        """Gas fees are the arithmetic sum of gas_fee_usd per day."""
        rows = engine.daily("starknet", "gas_fees_usd")

        assert rows[0].date == date(2024, 1, 15)
        assert rows[0].value == pytest.approx(2.1)
        assert rows[1].value == pytest.approx(1.1)
        assert all(r.currency == "USD" for r in rows)

    def test_sum_coerces_string_fields(self) -> None:
        """Unparseable field values count as 0."""
        events = [
            make_event("starknet", "2024-01-15T01:00:00Z", "transaction", gas_fee_usd="2.5"),
            make_event("starknet", "2024-01-15T02:00:00Z", "transaction", gas_fee_usd="abc"),
            make_event("starknet", "2024-01-15T03:00:00Z", "transaction", gas_fee_usd=1),
        ]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["gas_fees_usd"])

        assert rows[0].value == pytest.approx(3.5)

    def test_min_value_filter_discards_dust(self) -> None:
        """Transfers below the threshold are excluded from the volume."""
        events = [
            make_event("starknet", "2024-01-15T01:00:00Z", "transfer", amount_usd=0.5),
            make_event("starknet", "2024-01-15T02:00:00Z", "transfer", amount_usd=10),
            make_event("starknet", "2024-01-15T03:00:00Z", "transfer", amount_usd=1.0),
        ]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["transfer_volume_usd"])

        assert rows[0].value == pytest.approx(11.0)

    def test_day_with_only_dust_is_omitted(self) -> None:
        """A day whose every transfer is filtered out has no row."""
        events = [make_event("starknet", "2024-01-15T01:00:00Z", "transfer", amount_usd=0.2)]
        rows = compute_daily_metric(events, "starknet", BUILTIN_RULES["transfer_volume_usd"])

        assert rows == []

    def test_engine_min_value_override(self, engine: RollupEngine) -> None:
        """A per-call threshold replaces the rule's default."""
        rows = engine.daily("starknet", "transfer_volume_usd", min_value=100)

        assert [(r.date.day, r.value) for r in rows] == [(15, 150)]

    def test_custom_rule(self) -> None:
        """Engines accept extra rules."""
        rule = RollupRule(metric_type="swap_count", event_type="swap")
        store = InMemoryEventStore([make_event("starknet", "2024-01-15T00:00:00Z", "swap")])
        engine = RollupEngine(store, rules={"swap_count": rule})

        assert engine.daily("starknet", "swap_count")[0].value == 1


class TestCrossSource:
    """Concatenation across sources."""

    def test_sources_kept_separate_in_list_order(self, engine: RollupEngine) -> None:
        """Rows are concatenated per source, never summed."""
        rows = engine.cross_source(["ethereum", "starknet"], "tx_count")

        assert [r.source for r in rows] == ["ethereum", "ethereum", "starknet", "starknet"]
        assert [r.value for r in rows] == [1, 1, 2, 1]

    def test_unknown_source_contributes_nothing(self, engine: RollupEngine) -> None:
        assert engine.cross_source(["solana"], "tx_count") == []


class TestRollupErrors:
    """Failure modes."""

    def test_unknown_metric_raises(
        self, engine: RollupEngine, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="starklytics.spellbook.rollups"):
            with pytest.raises(ValueError, match="Unknown metric type"):
                engine.daily("starknet", "tvl")

        assert "tvl" in caplog.text

    def test_store_unavailable_propagates(self, sample_store: InMemoryEventStore) -> None:
        """Store outages are the one error the engine lets escape."""
        sample_store.available = False
        engine = RollupEngine(sample_store)

        with pytest.raises(RawStoreUnavailableError):
            engine.daily("starknet", "tx_count")
