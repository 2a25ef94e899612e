"""Read path used by the HTTP layer."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Set

from .catalog import EntityCatalog, normalize_entity_ref
from .config import ON_MISS_COMPUTE, ON_MISS_NOT_FOUND
from .errors import AnalysisError, CatalogError, StoreUnavailable
from .logging import get_logger
from .models import AnalysisResult, TrackedEntity
from .scheduler import Scheduler
from .staleness import StalenessPolicy
from .stores import ResultStore


class QueryFacade:
    """Serves stored results and triggers refreshes.

    Stored results are returned whether fresh or stale; freshness is reported
    alongside but never blocks a read. With ``refresh_stale`` a stale read also
    queues a background refresh, at most one per entity at a time. A miss
    either returns None (``not_found``) or runs one bounded analysis inline
    (``compute``). Entity refs are normalised to ``kind:namespace/name``.
    """

    def __init__(
        self,
        store: ResultStore,
        policy: StalenessPolicy,
        scheduler: Scheduler,
        catalog: EntityCatalog,
        *,
        on_miss: str = ON_MISS_NOT_FOUND,
        refresh_stale: bool = False,
        max_workers: int = 2,
    ) -> None:
        if on_miss not in (ON_MISS_NOT_FOUND, ON_MISS_COMPUTE):
            raise ValueError(f"Unsupported on_miss policy: {on_miss}")
        self.store = store
        self.policy = policy
        self.scheduler = scheduler
        self.catalog = catalog
        self.on_miss = on_miss
        self.refresh_stale = refresh_stale
        self.logger = get_logger("facade")
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="linguist-refresh"
        )
        self._pending: Set[str] = set()
        self._pending_lock = threading.Lock()

    def get(self, entity_ref: str) -> Optional[AnalysisResult]:
        """Return the stored result, computing one on a miss when configured to."""
        entity_ref = normalize_entity_ref(entity_ref)
        result = self.store.read(entity_ref)
        if result is not None:
            if self.refresh_stale and not self.is_fresh(result):
                self._queue_stale_refresh(entity_ref)
            return result
        if self.on_miss == ON_MISS_NOT_FOUND:
            return None
        return self._compute_on_miss(entity_ref)

    def list_all(self) -> List[AnalysisResult]:
        return self.store.read_all()

    def is_fresh(self, result: Optional[AnalysisResult]) -> bool:
        return self.policy.is_fresh(result, self.scheduler.clock.now())

    def refresh(self, entity_ref: str) -> Optional[Future]:
        """Queue a background analysis; returns None if the catalog does not know the entity."""
        entity = self.catalog.get_entity(normalize_entity_ref(entity_ref))
        if entity is None:
            return None
        self.logger.info("Refresh requested for %s", entity.entity_ref)
        return self._executor.submit(self._refresh_worker, entity)

    def pending_refreshes(self) -> Set[str]:
        with self._pending_lock:
            return set(self._pending)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _refresh_worker(self, entity: TrackedEntity) -> Optional[AnalysisResult]:
        try:
            return self.scheduler.analyze_entity(entity)
        except (AnalysisError, StoreUnavailable) as exc:
            self.logger.warning("Background refresh of %s failed: %s", entity.entity_ref, exc)
            return None
        except Exception:
            self.logger.exception("Unexpected error refreshing %s", entity.entity_ref)
            return None

    def _queue_stale_refresh(self, entity_ref: str) -> None:
        with self._pending_lock:
            if entity_ref in self._pending:
                return
            self._pending.add(entity_ref)
        self.logger.debug("Serving stale result for %s; refreshing in background", entity_ref)
        self._executor.submit(self._refresh_stale_worker, entity_ref)

    def _refresh_stale_worker(self, entity_ref: str) -> Optional[AnalysisResult]:
        try:
            return self._refresh_if_stale(entity_ref)
        finally:
            with self._pending_lock:
                self._pending.discard(entity_ref)

    def _refresh_if_stale(self, entity_ref: str) -> Optional[AnalysisResult]:
        try:
            # A tick or an earlier refresh may have caught up since the job was queued.
            if self.is_fresh(self.store.read(entity_ref)):
                return None
            entity = self.catalog.get_entity(entity_ref)
        except (CatalogError, StoreUnavailable) as exc:
            self.logger.warning("Stale refresh of %s skipped: %s", entity_ref, exc)
            return None
        if entity is None:
            return None
        return self._refresh_worker(entity)

    def _compute_on_miss(self, entity_ref: str) -> Optional[AnalysisResult]:
        try:
            entity = self.catalog.get_entity(entity_ref)
        except CatalogError as exc:
            self.logger.warning("Catalog lookup for %s failed: %s", entity_ref, exc)
            return None
        if entity is None:
            return None
        try:
            result = self.scheduler.analyze_entity(entity)
        except AnalysisError as exc:
            self.logger.warning("On-demand analysis of %s failed: %s", entity_ref, exc)
            return None
        if result is None:
            # Another caller is computing it; serve whatever is stored.
            return self.store.read(entity_ref)
        return self.store.read(entity_ref) or result


__all__ = ["QueryFacade"]
