from __future__ import annotations

from datetime import timedelta

import pytest

from linguist.analyzer import Analyzer
from linguist.clock import ManualClock
from linguist.config import ScheduleConfig
from linguist.staleness import StalenessPolicy
from linguist.scheduler import Scheduler
from linguist.stores import MemoryResultStore
from tests._fixtures.fakes import FakeCatalog, FakeFetcher


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> MemoryResultStore:
    return MemoryResultStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def policy() -> StalenessPolicy:
    return StalenessPolicy(max_age=timedelta(days=30))


@pytest.fixture
def schedule_config() -> ScheduleConfig:
    """The schedule the standalone server runs with."""
    return ScheduleConfig(
        frequency=timedelta(minutes=2),
        timeout=timedelta(minutes=15),
        initial_delay=timedelta(seconds=15),
        batch_size=0,
    )


@pytest.fixture
def analyzer(fetcher: FakeFetcher, clock: ManualClock) -> Analyzer:
    return Analyzer(fetcher, clock=clock)


@pytest.fixture
def scheduler(
    catalog: FakeCatalog,
    analyzer: Analyzer,
    store: MemoryResultStore,
    policy: StalenessPolicy,
    schedule_config: ScheduleConfig,
    clock: ManualClock,
) -> Scheduler:
    return Scheduler(
        catalog,
        analyzer,
        store,
        policy,
        schedule_config,
        clock=clock,
        holder_id="test-holder",
    )
