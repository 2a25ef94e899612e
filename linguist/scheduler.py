"""Recurring task that keeps stored language breakdowns up to date."""

from __future__ import annotations

import os
import socket
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from .analyzer import Analyzer
from .catalog import EntityCatalog
from .clock import Clock, SystemClock
from .config import ScheduleConfig
from .errors import AnalysisError, CatalogError, StoreUnavailable
from .logging import get_logger
from .models import AnalysisResult, TrackedEntity
from .staleness import StalenessPolicy
from .stores import ResultStore

TICK_LEASE = "linguist-tick"

STATUS_COMPLETED = "completed"
STATUS_TIMED_OUT = "timed_out"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"
STATUS_ABORTED = "aborted"


@dataclass
class TickReport:
    """Counters describing what a single tick did."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    status: str = STATUS_COMPLETED
    reason: Optional[str] = None
    analyzed: int = 0
    skipped_fresh: int = 0
    skipped_in_flight: int = 0
    skipped_no_location: int = 0
    deferred: int = 0
    abandoned: int = 0
    pruned: int = 0
    failures: Dict[str, int] = field(default_factory=dict)

    @property
    def failed(self) -> int:
        return sum(self.failures.values())

    def record_failure(self, kind: str) -> None:
        self.failures[kind] = self.failures.get(kind, 0) + 1


@dataclass
class ScheduleState:
    """Process-wide scheduler state; owned by a single ``Scheduler``."""

    holder_id: str
    started_at: Optional[datetime] = None
    last_tick_start: Optional[datetime] = None
    running: bool = False
    in_flight: Set[str] = field(default_factory=set)
    last_report: Optional[TickReport] = None


def default_holder_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class Scheduler:
    """Runs analysis ticks at a fixed frequency.

    ``Idle -> Running`` happens at ``started_at + initial_delay`` and then every
    ``frequency`` after the previous tick started. At most one tick runs per
    process, and a store lease keeps peer processes from running the same tick.
    """

    def __init__(
        self,
        catalog: EntityCatalog,
        analyzer: Analyzer,
        store: ResultStore,
        policy: StalenessPolicy,
        config: ScheduleConfig | None = None,
        *,
        clock: Clock | None = None,
        holder_id: str | None = None,
    ) -> None:
        self.catalog = catalog
        self.analyzer = analyzer
        self.store = store
        self.policy = policy
        self.config = config or ScheduleConfig()
        self.clock = clock or SystemClock()
        self.state = ScheduleState(holder_id=holder_id or default_holder_id())
        self.logger = get_logger("scheduler")
        self._tick_guard = threading.Lock()
        self._in_flight_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle

    def mark_started(self, now: datetime | None = None) -> None:
        """Anchor the initial delay; ``start`` calls this for the background loop."""
        self.state.started_at = now or self.clock.now()
        self.state.last_tick_start = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self.mark_started()
        self.logger.info(
            "Scheduler started (frequency=%s timeout=%s initial_delay=%s holder=%s)",
            self.config.frequency,
            self.config.timeout,
            self.config.initial_delay,
            self.state.holder_id,
        )
        thread = threading.Thread(target=self._loop, name="linguist-scheduler", daemon=True)
        self._thread = thread
        thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to stop; a running tick abandons its remaining entities."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None
        self.logger.info("Scheduler stopped")

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_pending()
            except Exception:  # pragma: no cover - keep the loop alive
                self.logger.exception("Scheduler tick raised unexpectedly")
            self._stop.wait(self.config.poll_interval)

    # ------------------------------------------------------------------
    # Ticks

    def is_due(self, now: datetime) -> bool:
        if self.state.started_at is None:
            return False
        if self.state.last_tick_start is None:
            return now >= self.state.started_at + self.config.initial_delay
        return now >= self.state.last_tick_start + self.config.frequency

    def next_due(self) -> Optional[datetime]:
        if self.state.started_at is None:
            return None
        if self.state.last_tick_start is None:
            return self.state.started_at + self.config.initial_delay
        return self.state.last_tick_start + self.config.frequency

    def run_pending(self) -> Optional[TickReport]:
        """Run a tick if one is due; otherwise return None."""
        if not self.is_due(self.clock.now()):
            return None
        return self.tick()

    def tick(self) -> TickReport:
        """Run one analysis pass over the catalog."""
        if not self._tick_guard.acquire(blocking=False):
            report = TickReport(started_at=self.clock.now(), status=STATUS_SKIPPED)
            report.reason = "previous tick still running"
            report.finished_at = report.started_at
            self.logger.debug("Skipping tick: previous tick still running")
            return report

        started = self.clock.now()
        report = TickReport(started_at=started)
        self.state.last_tick_start = started
        self.state.running = True
        try:
            self._run_leased(report, deadline=started + self.config.timeout)
        finally:
            report.finished_at = self.clock.now()
            self.state.running = False
            self.state.last_report = report
            self._tick_guard.release()

        self.logger.info(
            "Tick %s: analyzed=%d fresh=%d failed=%d abandoned=%d deferred=%d",
            report.status,
            report.analyzed,
            report.skipped_fresh,
            report.failed,
            report.abandoned,
            report.deferred,
        )
        return report

    def _run_leased(self, report: TickReport, *, deadline: datetime) -> None:
        holder = self.state.holder_id
        ttl = max(self.config.timeout, self.config.frequency)
        try:
            acquired = self.store.acquire_lease(TICK_LEASE, holder, ttl, report.started_at)
        except StoreUnavailable as exc:
            report.status = STATUS_FAILED
            report.reason = f"lease unavailable: {exc}"
            self.logger.warning("Could not acquire tick lease: %s", exc)
            return
        if not acquired:
            report.status = STATUS_SKIPPED
            report.reason = "tick lease held by another instance"
            self.logger.debug("Skipping tick: lease held by another instance")
            return

        try:
            self._run_entities(report, deadline=deadline)
        finally:
            try:
                self.store.release_lease(TICK_LEASE, holder)
            except StoreUnavailable as exc:
                # The lease expires on its own after ttl.
                self.logger.warning("Could not release tick lease: %s", exc)

    def _run_entities(self, report: TickReport, *, deadline: datetime) -> None:
        try:
            entities = self.catalog.list_tracked_entities()
        except CatalogError as exc:
            report.status = STATUS_FAILED
            report.reason = str(exc)
            self.logger.warning("Catalog unavailable, tick ends early: %s", exc)
            return

        if self.config.prune_orphans:
            self._prune(entities, report)

        budget = self.config.batch_size or None
        for index, entity in enumerate(entities):
            remaining = len(entities) - index
            if self._stop.is_set():
                report.abandoned += remaining
                report.status = STATUS_ABORTED
                break
            now = self.clock.now()
            if now >= deadline:
                report.abandoned += remaining
                report.status = STATUS_TIMED_OUT
                self.logger.warning(
                    "Tick exceeded timeout of %s; %d entities left for the next tick",
                    self.config.timeout,
                    remaining,
                )
                break

            if not entity.location:
                report.skipped_no_location += 1
                continue

            try:
                current = self.store.read(entity.entity_ref)
            except StoreUnavailable as exc:
                report.record_failure("store_unavailable")
                self.logger.warning("Could not read result for %s: %s", entity.entity_ref, exc)
                continue
            if not self.policy.needs_analysis(current, entity.location, now):
                report.skipped_fresh += 1
                continue

            if budget is not None and report.analyzed + report.failed >= budget:
                report.deferred += 1
                continue

            self._process(entity, report, deadline=deadline)

    def _process(self, entity: TrackedEntity, report: TickReport, *, deadline: datetime) -> None:
        try:
            result = self.analyze_entity(entity, deadline=deadline)
        except AnalysisError as exc:
            report.record_failure(exc.kind)
            self.logger.warning("Analysis of %s failed (%s): %s", entity.entity_ref, exc.kind, exc)
            return
        except StoreUnavailable as exc:
            report.record_failure("store_unavailable")
            self.logger.warning("Could not store result for %s: %s", entity.entity_ref, exc)
            return
        except Exception as exc:  # pragma: no cover - plugin bugs must not stop the tick
            report.record_failure("unexpected")
            self.logger.exception("Unexpected error analysing %s: %s", entity.entity_ref, exc)
            return

        if result is None:
            report.skipped_in_flight += 1
        else:
            report.analyzed += 1

    def _prune(self, entities: List[TrackedEntity], report: TickReport) -> None:
        known = {entity.entity_ref for entity in entities}
        try:
            for result in self.store.read_all():
                if result.entity_ref not in known and self.store.delete(result.entity_ref):
                    report.pruned += 1
                    self.logger.debug("Pruned result for %s", result.entity_ref)
        except StoreUnavailable as exc:
            self.logger.warning("Could not prune orphaned results: %s", exc)

    # ------------------------------------------------------------------
    # Single-entity path

    def analyze_entity(
        self, entity: TrackedEntity, *, deadline: datetime | None = None
    ) -> Optional[AnalysisResult]:
        """Analyse and store one entity.

        Returns None when the entity is already being analysed in this process.
        Raises ``AnalysisError`` or ``StoreUnavailable``; on failure the store is
        left untouched.
        """
        if not self._claim(entity.entity_ref):
            self.logger.debug("Analysis of %s already in flight", entity.entity_ref)
            return None
        try:
            if deadline is None:
                deadline = self.clock.now() + self.config.timeout
            result = self.analyzer.analyze(entity.entity_ref, entity.location, deadline=deadline)
            if not self.store.upsert(result):
                self.logger.debug(
                    "Kept newer stored result for %s over result computed at %s",
                    entity.entity_ref,
                    result.computed_at,
                )
            return result
        finally:
            self._release(entity.entity_ref)

    def in_flight(self) -> Set[str]:
        with self._in_flight_lock:
            return set(self.state.in_flight)

    def _claim(self, entity_ref: str) -> bool:
        with self._in_flight_lock:
            if entity_ref in self.state.in_flight:
                return False
            self.state.in_flight.add(entity_ref)
            return True

    def _release(self, entity_ref: str) -> None:
        with self._in_flight_lock:
            self.state.in_flight.discard(entity_ref)


__all__ = [
    "STATUS_ABORTED",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
    "STATUS_TIMED_OUT",
    "ScheduleState",
    "Scheduler",
    "TICK_LEASE",
    "TickReport",
    "default_holder_id",
]
