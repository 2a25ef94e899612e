"""Result store contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from ..models import AnalysisResult


@dataclass(frozen=True)
class Lease:
    """Time-bounded exclusive claim on a named piece of work."""

    name: str
    holder: str
    expires_at: datetime


class ResultStore(ABC):
    """Holds at most one current analysis result per entity.

    ``upsert`` is last-writer-wins by ``computed_at``: a result older than (or
    as old as) the stored one is rejected no matter when it arrives.
    """

    @abstractmethod
    def upsert(self, result: AnalysisResult) -> bool:
        """Store ``result`` unless a newer one exists; return True if stored."""

    @abstractmethod
    def read(self, entity_ref: str) -> Optional[AnalysisResult]:
        """Return the current result for ``entity_ref``."""

    @abstractmethod
    def read_all(self) -> List[AnalysisResult]:
        """Return every stored result ordered by entity ref."""

    @abstractmethod
    def delete(self, entity_ref: str) -> bool:
        """Drop the result for ``entity_ref``; return True if a row existed."""

    @abstractmethod
    def acquire_lease(self, name: str, holder: str, ttl: timedelta, now: datetime) -> bool:
        """Claim ``name`` for ``holder`` until ``now + ttl``.

        Succeeds when the lease is free, expired or already held by ``holder``.
        """

    @abstractmethod
    def release_lease(self, name: str, holder: str) -> None:
        """Give up ``name`` if ``holder`` still owns it."""

    def close(self) -> None:
        """Release underlying resources."""
