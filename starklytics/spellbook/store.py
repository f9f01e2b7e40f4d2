"""Raw event store adapters.

The store is read-only to this package. Components receive a store
instance explicitly so tests can use isolated data sets.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from ..errors import RawStoreUnavailableError
from .models import RawEvent

logger = logging.getLogger(__name__)

_RESERVED_KEYS = {"source", "blockchain", "chain", "timestamp", "event_type"}


class RawEventStore:
    """Interface for reading raw events.

    Implementations raise RawStoreUnavailableError when the backing data
    cannot be read.
    """

    def events(self, source: str) -> Sequence[RawEvent]:
        raise NotImplementedError

    def sources(self) -> list[str]:
        raise NotImplementedError


class InMemoryEventStore(RawEventStore):
    """Events held in memory, grouped by source."""

    def __init__(self, events: Iterable[RawEvent] = ()) -> None:
        self._events: tuple[RawEvent, ...] = tuple(events)
        self.available = True

    @classmethod
    def with_samples(cls) -> InMemoryEventStore:
        return cls(sample_events())

    def events(self, source: str) -> Sequence[RawEvent]:
        if not self.available:
            raise RawStoreUnavailableError("Raw event store is unavailable")
        wanted = source.lower()
        return tuple(e for e in self._events if e.source == wanted)

    def sources(self) -> list[str]:
        if not self.available:
            raise RawStoreUnavailableError("Raw event store is unavailable")
        return sorted({e.source for e in self._events})


class JSONLEventStore(RawEventStore):
    """Events read from a JSONL file, one object per line.

    Usage:
        store = JSONLEventStore("events.jsonl")
        store.events("starknet")

    Each line looks like::

        {"blockchain": "starknet", "timestamp": "2024-01-15T10:00:00Z",
         "event_type": "transaction", "gas_fee_usd": 1.2}

    The file is re-read when its modification time changes.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._cache: tuple[RawEvent, ...] = ()
        self._mtime: float | None = None
        self.parse_errors: int = 0

    def events(self, source: str) -> Sequence[RawEvent]:
        wanted = source.lower()
        return tuple(e for e in self._load() if e.source == wanted)

    def sources(self) -> list[str]:
        return sorted({e.source for e in self._load()})

    def _load(self) -> tuple[RawEvent, ...]:
        try:
            mtime = self.path.stat().st_mtime
            if mtime == self._mtime:
                return self._cache
            with open(self.path, "r", encoding="utf-8") as f:
                events = tuple(self._parse_lines(f))
        except OSError as e:
            raise RawStoreUnavailableError(
                f"Cannot read raw events from {self.path}: {e}"
            ) from e
        self._cache = events
        self._mtime = mtime
        return events

    def _parse_lines(self, lines: Iterable[str]) -> Iterator[RawEvent]:
        for number, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                if not isinstance(data, dict):
                    raise ValueError(f"event is not an object: {type(data).__name__}")
                yield parse_event(data)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping raw event on line %d of %s: %s", number, self.path, e)
                self.parse_errors += 1


def parse_event(data: dict[str, Any]) -> RawEvent:
    """Build a RawEvent from a decoded JSON object.

    Raises:
        KeyError: If the source, timestamp or event_type is missing.
        ValueError: If the timestamp is not ISO-8601.
    """
    source = data.get("source") or data.get("blockchain") or data.get("chain")
    if not source:
        raise KeyError("source")
    timestamp = datetime.fromisoformat(str(data["timestamp"]).replace("Z", "+00:00"))
    fields = {k: v for k, v in data.items() if k not in _RESERVED_KEYS}
    return RawEvent(
        source=str(source),
        timestamp=timestamp,
        event_type=str(data["event_type"]),
        fields=fields,
    )


_SAMPLE_TRANSACTIONS = [
    ("starknet", "2024-01-15T10:00:00Z", "0xsn1", 1.2),
    ("starknet", "2024-01-15T13:00:00Z", "0xsn2", 0.9),
    ("starknet", "2024-01-16T09:00:00Z", "0xsn3", 1.1),
    ("ethereum", "2024-01-15T08:00:00Z", "0xeth1", 3.2),
    ("ethereum", "2024-01-16T11:30:00Z", "0xeth2", 2.8),
]

_SAMPLE_TRANSFERS = [
    ("starknet", "2024-01-15T12:30:00Z", "USDC", 150),
    ("starknet", "2024-01-16T15:00:00Z", "USDC", 90),
    ("ethereum", "2024-01-15T07:45:00Z", "USDC", 1200),
    ("ethereum", "2024-01-16T14:10:00Z", "USDC", 800),
]


def sample_events() -> list[RawEvent]:
    """Small demo data set: starknet and ethereum on 2024-01-15/16."""
    events = [
        parse_event({
            "source": chain,
            "timestamp": ts,
            "event_type": "transaction",
            "tx_hash": tx_hash,
            "gas_fee_usd": fee,
        })
        for chain, ts, tx_hash, fee in _SAMPLE_TRANSACTIONS
    ]
    events.extend(
        parse_event({
            "source": chain,
            "timestamp": ts,
            "event_type": "transfer",
            "token": token,
            "amount_usd": amount,
        })
        for chain, ts, token, amount in _SAMPLE_TRANSFERS
    )
    return events
