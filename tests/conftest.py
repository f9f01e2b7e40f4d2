"""Pytest fixtures for Starklytics tests.

Every fixture builds fresh stores so tests never share state.
"""

from __future__ import annotations

from typing import Iterator

import pytest

from starklytics.config import reset_config
from starklytics.dashboards import DashboardComposer, DashboardRepository
from starklytics.spellbook import InMemoryEventStore, QueryDispatcher, RollupEngine
from tests.testing_utils import FakeChannel


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (waits on real timeouts)"
    )


@pytest.fixture(autouse=True)
def _reset_global_config() -> Iterator[None]:
    """Forget any globally loaded config between tests."""
    yield
    reset_config()


@pytest.fixture
def sample_store() -> InMemoryEventStore:
    """Bundled starknet/ethereum sample events."""
    return InMemoryEventStore.with_samples()


@pytest.fixture
def engine(sample_store: InMemoryEventStore) -> RollupEngine:
    return RollupEngine(sample_store)


@pytest.fixture
def dispatcher(engine: RollupEngine) -> QueryDispatcher:
    return QueryDispatcher(engine)


@pytest.fixture
def repository() -> DashboardRepository:
    return DashboardRepository()


@pytest.fixture
def composer(repository: DashboardRepository, dispatcher: QueryDispatcher) -> DashboardComposer:
    return DashboardComposer(repository, dispatcher)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()
