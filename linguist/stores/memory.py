"""Process-local result store."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .base import Lease, ResultStore
from ..models import AnalysisResult


class MemoryResultStore(ResultStore):
    """Dictionary-backed store guarded by a lock; results are copied on the way in and out."""

    def __init__(self) -> None:
        self._results: Dict[str, AnalysisResult] = {}
        self._leases: Dict[str, Lease] = {}
        self._lock = threading.Lock()

    def upsert(self, result: AnalysisResult) -> bool:
        with self._lock:
            current = self._results.get(result.entity_ref)
            if current is not None and current.computed_at >= result.computed_at:
                return False
            self._results[result.entity_ref] = _copy(result)
            return True

    def read(self, entity_ref: str) -> Optional[AnalysisResult]:
        with self._lock:
            result = self._results.get(entity_ref)
            return _copy(result) if result is not None else None

    def read_all(self) -> List[AnalysisResult]:
        with self._lock:
            return [_copy(self._results[key]) for key in sorted(self._results)]

    def delete(self, entity_ref: str) -> bool:
        with self._lock:
            return self._results.pop(entity_ref, None) is not None

    def acquire_lease(self, name: str, holder: str, ttl: timedelta, now: datetime) -> bool:
        with self._lock:
            current = self._leases.get(name)
            if current is not None and current.holder != holder and current.expires_at > now:
                return False
            self._leases[name] = Lease(name=name, holder=holder, expires_at=now + ttl)
            return True

    def release_lease(self, name: str, holder: str) -> None:
        with self._lock:
            current = self._leases.get(name)
            if current is not None and current.holder == holder:
                del self._leases[name]


def _copy(result: AnalysisResult) -> AnalysisResult:
    return replace(result, stats=list(result.stats))


__all__ = ["MemoryResultStore"]
