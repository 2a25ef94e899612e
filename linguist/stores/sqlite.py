"""SQLite-backed result store shared by the scheduler, readers and peer processes."""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, List, Optional

from .base import ResultStore
from ..errors import StoreUnavailable
from ..logging import get_logger
from ..models import AnalysisResult, stats_from_payload

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS entity_results ("
    "entity_ref TEXT PRIMARY KEY, "
    "stats TEXT NOT NULL, "
    "computed_at INTEGER NOT NULL, "
    "source_location_used TEXT, "
    "unit TEXT NOT NULL, "
    "unreadable_files INTEGER NOT NULL DEFAULT 0"
    ")",
    "CREATE TABLE IF NOT EXISTS leases ("
    "name TEXT PRIMARY KEY, "
    "holder TEXT NOT NULL, "
    "expires_at INTEGER NOT NULL"
    ")",
)

# The WHERE clause on the conflict branch makes the write conditional, so a
# slow run that finishes late never replaces a newer result.
_UPSERT_RESULT = (
    "INSERT INTO entity_results ("
    "entity_ref, stats, computed_at, source_location_used, unit, unreadable_files"
    ") VALUES (?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(entity_ref) DO UPDATE SET "
    "stats = excluded.stats, "
    "computed_at = excluded.computed_at, "
    "source_location_used = excluded.source_location_used, "
    "unit = excluded.unit, "
    "unreadable_files = excluded.unreadable_files "
    "WHERE excluded.computed_at > entity_results.computed_at"
)

_ACQUIRE_LEASE = (
    "INSERT INTO leases (name, holder, expires_at) VALUES (?, ?, ?) "
    "ON CONFLICT(name) DO UPDATE SET "
    "holder = excluded.holder, "
    "expires_at = excluded.expires_at "
    "WHERE leases.holder = excluded.holder OR leases.expires_at <= ?"
)

_SELECT_COLUMNS = (
    "SELECT entity_ref, stats, computed_at, source_location_used, unit, unreadable_files "
    "FROM entity_results"
)


def to_micros(value: datetime) -> int:
    """Encode a timestamp as integer microseconds since the epoch (UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def from_micros(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


class SQLiteResultStore(ResultStore):
    """Persist analysis results and scheduler leases in SQLite.

    One connection is shared by all threads of the process and serialised with
    a lock; cross-process safety comes from SQLite's own write locking plus the
    conditional upserts above.
    """

    def __init__(self, db_path: Path | str = ":memory:", *, timeout: float = 30.0) -> None:
        """Open (and if needed create) the database.

        Args:
            db_path: SQLite database file path, or ``:memory:``.
            timeout: Seconds to wait for another process's write lock.
        """
        self._db_path = str(db_path)
        self._lock = threading.Lock()
        self.logger = get_logger("stores.sqlite")
        try:
            self._connection = sqlite3.connect(
                self._db_path, timeout=timeout, check_same_thread=False
            )
            with self._connection:
                for statement in _SCHEMA:
                    self._connection.execute(statement)
        except sqlite3.Error as exc:
            self.logger.warning(
                "SQLite initialisation failed (db_path=%s error=%s)", self._db_path, exc
            )
            raise StoreUnavailable(str(exc)) from exc

    def upsert(self, result: AnalysisResult) -> bool:
        stats = json.dumps(
            [
                {"language": stat.language, "amount": stat.amount, "type": stat.type}
                for stat in result.stats
            ],
            sort_keys=True,
        )
        params = (
            result.entity_ref,
            stats,
            to_micros(result.computed_at),
            result.source_location_used,
            result.unit,
            result.unreadable_files,
        )
        return self._write(_UPSERT_RESULT, params) > 0

    def read(self, entity_ref: str) -> Optional[AnalysisResult]:
        rows = self._query(f"{_SELECT_COLUMNS} WHERE entity_ref = ?", (entity_ref,))
        return _row_to_result(rows[0]) if rows else None

    def read_all(self) -> List[AnalysisResult]:
        return [_row_to_result(row) for row in self._query(f"{_SELECT_COLUMNS} ORDER BY entity_ref")]

    def delete(self, entity_ref: str) -> bool:
        return self._write("DELETE FROM entity_results WHERE entity_ref = ?", (entity_ref,)) > 0

    def acquire_lease(self, name: str, holder: str, ttl: timedelta, now: datetime) -> bool:
        now_us = to_micros(now)
        expires_us = to_micros(now + ttl)
        return self._write(_ACQUIRE_LEASE, (name, holder, expires_us, now_us)) > 0

    def release_lease(self, name: str, holder: str) -> None:
        self._write("DELETE FROM leases WHERE name = ? AND holder = ?", (name, holder))

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> List[tuple[Any, ...]]:
        with self._lock:
            try:
                return self._connection.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                self._log_failure(exc)
                raise StoreUnavailable(str(exc)) from exc

    def _write(self, sql: str, params: tuple[Any, ...]) -> int:
        """Run one statement in its own transaction and return the changed row count."""
        with self._lock:
            try:
                with self._connection:
                    return self._connection.execute(sql, params).rowcount
            except sqlite3.Error as exc:
                self._log_failure(exc)
                raise StoreUnavailable(str(exc)) from exc

    def _log_failure(self, exc: sqlite3.Error) -> None:
        self.logger.warning("SQLite operation failed (db_path=%s error=%s)", self._db_path, exc)


def _row_to_result(row: tuple[Any, ...]) -> AnalysisResult:
    entity_ref, stats, computed_at, location, unit, unreadable = row
    try:
        payload = json.loads(stats)
    except json.JSONDecodeError as exc:
        raise StoreUnavailable(f"Corrupt stats for {entity_ref}: {exc}") from exc
    return AnalysisResult(
        entity_ref=entity_ref,
        stats=stats_from_payload(payload if isinstance(payload, list) else []),
        computed_at=from_micros(int(computed_at)),
        source_location_used=location,
        unit=unit,
        unreadable_files=int(unreadable or 0),
    )


__all__ = ["SQLiteResultStore", "from_micros", "to_micros"]
