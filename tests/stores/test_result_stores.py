"""Tests for the result store implementations."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from linguist.errors import StoreUnavailable
from linguist.models import AnalysisResult, LanguageStat
from linguist.stores import MemoryResultStore, ResultStore, SQLiteResultStore

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _result(ref: str, seconds: float, language: str = "Go", amount: int = 100) -> AnalysisResult:
    return AnalysisResult(
        entity_ref=ref,
        stats=[LanguageStat(language=language, amount=amount)],
        computed_at=T0 + timedelta(seconds=seconds),
        source_location_used=f"https://example.com/{ref}",
    )


@pytest.fixture(params=["memory", "sqlite"])
def result_store(request, tmp_path: Path) -> ResultStore:
    if request.param == "memory":
        store: ResultStore = MemoryResultStore()
    else:
        store = SQLiteResultStore(tmp_path / "linguist.db")
    yield store
    store.close()


def test_read_missing_returns_none(result_store: ResultStore) -> None:
    assert result_store.read("component:default/missing") is None


def test_upsert_then_read(result_store: ResultStore) -> None:
    result = _result("component:default/a", 15)

    assert result_store.upsert(result) is True
    assert result_store.read("component:default/a") == result


def test_newer_result_replaces_older(result_store: ResultStore) -> None:
    result_store.upsert(_result("component:default/a", 10, "Go"))
    result_store.upsert(_result("component:default/a", 20, "Rust"))

    stored = result_store.read("component:default/a")
    assert stored.computed_at == T0 + timedelta(seconds=20)
    assert stored.stats[0].language == "Rust"


def test_out_of_order_upsert_keeps_newest(result_store: ResultStore) -> None:
    assert result_store.upsert(_result("component:default/e", 100, "Go")) is True
    assert result_store.upsert(_result("component:default/e", 90, "Python")) is False

    stored = result_store.read("component:default/e")
    assert stored.computed_at == T0 + timedelta(seconds=100)
    assert stored.stats[0].language == "Go"


def test_concurrent_upserts_keep_max_computed_at(result_store: ResultStore) -> None:
    barrier = threading.Barrier(2)

    def write(seconds: int) -> None:
        barrier.wait()
        result_store.upsert(_result("component:default/e", seconds))

    threads = [threading.Thread(target=write, args=(value,)) for value in (100, 90)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert result_store.read("component:default/e").computed_at == T0 + timedelta(seconds=100)


def test_read_all_is_ordered_by_ref(result_store: ResultStore) -> None:
    result_store.upsert(_result("component:default/b", 1))
    result_store.upsert(_result("component:default/a", 1))

    refs = [result.entity_ref for result in result_store.read_all()]
    assert refs == ["component:default/a", "component:default/b"]


def test_delete(result_store: ResultStore) -> None:
    result_store.upsert(_result("component:default/a", 1))

    assert result_store.delete("component:default/a") is True
    assert result_store.delete("component:default/a") is False
    assert result_store.read("component:default/a") is None


def test_lease_is_exclusive_until_expiry(result_store: ResultStore) -> None:
    ttl = timedelta(minutes=15)

    assert result_store.acquire_lease("tick", "a", ttl, T0) is True
    assert result_store.acquire_lease("tick", "b", ttl, T0 + timedelta(minutes=1)) is False
    # The holder may renew its own lease.
    assert result_store.acquire_lease("tick", "a", ttl, T0 + timedelta(minutes=1)) is True
    assert result_store.acquire_lease("tick", "b", ttl, T0 + timedelta(minutes=17)) is True


def test_release_only_by_holder(result_store: ResultStore) -> None:
    ttl = timedelta(minutes=15)
    result_store.acquire_lease("tick", "a", ttl, T0)

    result_store.release_lease("tick", "b")
    assert result_store.acquire_lease("tick", "b", ttl, T0) is False

    result_store.release_lease("tick", "a")
    assert result_store.acquire_lease("tick", "b", ttl, T0) is True


def test_memory_store_returns_copies() -> None:
    store = MemoryResultStore()
    store.upsert(_result("component:default/a", 1))

    store.read("component:default/a").stats.clear()

    assert store.read("component:default/a").stats


def test_sqlite_results_survive_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "linguist.db"
    first = SQLiteResultStore(db_path)
    first.upsert(_result("component:default/a", 1.5))
    first.close()

    second = SQLiteResultStore(db_path)
    try:
        stored = second.read("component:default/a")
    finally:
        second.close()

    assert stored is not None
    assert stored.computed_at == T0 + timedelta(seconds=1.5)
    assert stored.source_location_used == "https://example.com/component:default/a"


def test_sqlite_leases_are_shared_between_connections(tmp_path: Path) -> None:
    db_path = tmp_path / "linguist.db"
    instance_a = SQLiteResultStore(db_path)
    instance_b = SQLiteResultStore(db_path)
    try:
        assert instance_a.acquire_lease("tick", "a", timedelta(minutes=15), T0) is True
        assert instance_b.acquire_lease("tick", "b", timedelta(minutes=15), T0) is False
    finally:
        instance_a.close()
        instance_b.close()


def test_sqlite_failure_raises_store_unavailable(tmp_path: Path) -> None:
    store = SQLiteResultStore(tmp_path / "linguist.db")
    store.close()

    with pytest.raises(StoreUnavailable):
        store.read("component:default/a")
