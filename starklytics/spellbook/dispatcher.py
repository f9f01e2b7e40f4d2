"""Query dispatcher: free-text query → rollup → tabular result.

Not a SQL parser. The lowercased text is tested against an ordered list
of intents and the first matching predicate wins; list order is the
priority. Text that matches nothing gets a one-row diagnostic result.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Sequence

from .models import QueryResult
from .rollups import RollupEngine

logger = logging.getLogger(__name__)

_SOURCE_EQ = re.compile(r"\b(?:blockchain|source)\s*=\s*'([a-z0-9_\-]+)'")
_SOURCE_IN = re.compile(r"\b(?:blockchain|source)\s+in\s*\(([^)]*)\)")
_QUOTED = re.compile(r"'([a-z0-9_\-]+)'")

Predicate = Callable[[str], bool]
Handler = Callable[[RollupEngine, Sequence[str]], QueryResult]


@dataclass(frozen=True)
class QueryIntent:
    """One (predicate, handler) entry of the dispatch table."""

    name: str
    matches: Predicate
    handle: Handler


def extract_sources(text: str, default_source: str) -> list[str]:
    """Sources named by the query's blockchain/source clause.

    An ``IN ('a', 'b')`` list wins over an equality clause; with neither,
    the default source is used.
    """
    lowered = text.lower()
    in_clause = _SOURCE_IN.search(lowered)
    if in_clause:
        sources = _QUOTED.findall(in_clause.group(1))
        if sources:
            return list(dict.fromkeys(sources))
    eq_clause = _SOURCE_EQ.search(lowered)
    if eq_clause:
        return [eq_clause.group(1)]
    return [default_source]


def _metric_handler(
    metric_type: str, with_currency: bool, min_value: float | None = None
) -> Handler:
    def handle(engine: RollupEngine, sources: Sequence[str]) -> QueryResult:
        rows = engine.cross_source(sources, metric_type, min_value=min_value)
        return QueryResult.from_metric_rows(rows, with_currency=with_currency)

    return handle


def default_intents(transfer_min_usd: float = 1.0) -> list[QueryIntent]:
    """The standard dispatch table, highest priority first."""
    return [
        QueryIntent(
            name="transfer_volume",
            matches=lambda q: "from" in q and "transfers" in q,
            handle=_metric_handler("transfer_volume_usd", True, min_value=transfer_min_usd),
        ),
        QueryIntent(
            name="transaction_count",
            matches=lambda q: "transactions" in q or "tx_count" in q,
            handle=_metric_handler("tx_count", False),
        ),
        QueryIntent(
            name="gas_fees",
            matches=lambda q: "gas" in q and "fees" in q,
            handle=_metric_handler("gas_fees_usd", True),
        ),
    ]


class QueryDispatcher:
    """Route free-text queries to rollups.

    Usage:
        dispatcher = QueryDispatcher(RollupEngine(store))
        result = dispatcher.execute(
            "SELECT * FROM transactions WHERE blockchain = 'starknet'"
        )
    """

    def __init__(
        self,
        engine: RollupEngine,
        intents: Sequence[QueryIntent] | None = None,
        default_source: str = "starknet",
    ) -> None:
        self.engine = engine
        self.intents: list[QueryIntent] = list(
            intents if intents is not None else default_intents()
        )
        self.default_source = default_source.lower()

    def resolve(self, text: str) -> QueryIntent | None:
        """First intent whose predicate matches, or None."""
        lowered = text.lower()
        for intent in self.intents:
            if intent.matches(lowered):
                return intent
        return None

    def execute(self, text: str) -> QueryResult:
        """Run a query.

        Never raises for unrecognized text.

        Raises:
            RawStoreUnavailableError: If the raw event store cannot be read.
        """
        sources = extract_sources(text, self.default_source)
        intent = self.resolve(text)
        if intent is None:
            logger.debug("No intent matched query: %.100s", text)
            return QueryResult(
                columns=["message"],
                rows=[[f"No matching pattern for blockchain={','.join(sources)}"]],
            )
        logger.debug("Query resolved to %s for %s", intent.name, sources)
        return intent.handle(self.engine, sources)
