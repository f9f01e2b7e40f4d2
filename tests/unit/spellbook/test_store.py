"""Tests for raw event store adapters."""

import json
from pathlib import Path

import pytest

from starklytics.errors import RawStoreUnavailableError
from starklytics.spellbook import InMemoryEventStore, JSONLEventStore, sample_events
from starklytics.spellbook.store import parse_event


class TestSampleEvents:
    """Bundled demo data."""

    def test_sample_sources(self, sample_store: InMemoryEventStore) -> None:
        assert sample_store.sources() == ["ethereum", "starknet"]

    def test_sample_starknet_transactions(self, sample_store: InMemoryEventStore) -> None:
        txs = [e for e in sample_store.events("starknet") if e.event_type == "transaction"]

        assert len(txs) == 3
        assert all(e.timestamp.tzinfo is not None for e in txs)

    def test_samples_are_fresh_lists(self) -> None:
        assert sample_events() is not sample_events()


class TestParseEvent:
    """Decoding JSON objects into RawEvents."""

    def test_blockchain_key_and_z_suffix(self) -> None:
        event = parse_event({
            "blockchain": "StarkNet",
            "timestamp": "2024-01-15T10:00:00Z",
            "event_type": "transaction",
            "gas_fee_usd": 1.2,
        })

        assert event.source == "starknet"
        assert event.timestamp.utcoffset().total_seconds() == 0
        assert event.fields == {"gas_fee_usd": 1.2}

    def test_missing_source_raises(self) -> None:
        with pytest.raises(KeyError):
            parse_event({"timestamp": "2024-01-15T10:00:00Z", "event_type": "transaction"})

    def test_bad_timestamp_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_event({"source": "starknet", "timestamp": "yesterday", "event_type": "x"})


class TestInMemoryStore:
    def test_unavailable_store_raises(self) -> None:
        store = InMemoryEventStore()
        store.available = False

        with pytest.raises(RawStoreUnavailableError):
            store.events("starknet")
        with pytest.raises(RawStoreUnavailableError):
            store.sources()

    def test_source_lookup_case_insensitive(self, sample_store: InMemoryEventStore) -> None:
        assert len(sample_store.events("ETHEREUM")) == 4


class TestJSONLEventStore:
    """File-backed store."""

    def _write(self, path: Path, lines: list[str]) -> None:
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def test_reads_events(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        self._write(path, [
            json.dumps({"source": "starknet", "timestamp": "2024-01-15T10:00:00Z",
                        "event_type": "transaction", "gas_fee_usd": 1.0}),
            json.dumps({"source": "ethereum", "timestamp": "2024-01-15T11:00:00Z",
                        "event_type": "transaction", "gas_fee_usd": 2.0}),
        ])
        store = JSONLEventStore(path)

        assert store.sources() == ["ethereum", "starknet"]
        assert len(store.events("starknet")) == 1

    def test_bad_lines_skipped_and_counted(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        self._write(path, [
            "not json",
            "[1, 2]",
            json.dumps({"source": "starknet", "timestamp": "2024-01-15T10:00:00Z",
                        "event_type": "transaction"}),
            json.dumps({"timestamp": "2024-01-15T10:00:00Z", "event_type": "transaction"}),
            "",
        ])
        store = JSONLEventStore(path)

        assert len(store.events("starknet")) == 1
        assert store.parse_errors == 3

    def test_missing_file_is_unavailable(self, tmp_path: Path) -> None:
        store = JSONLEventStore(tmp_path / "absent.jsonl")

        with pytest.raises(RawStoreUnavailableError):
            store.events("starknet")
