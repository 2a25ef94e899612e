"""Freshness rules for cached analysis results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .models import AnalysisResult


@dataclass(frozen=True)
class StalenessPolicy:
    """Decides whether a stored result may be reused or must be recomputed."""

    max_age: timedelta

    def is_fresh(self, result: Optional[AnalysisResult], now: datetime) -> bool:
        """Return True while ``now`` is strictly before ``computed_at + max_age``."""
        if result is None:
            return False
        return now - result.computed_at < self.max_age

    def needs_analysis(
        self,
        result: Optional[AnalysisResult],
        location: Optional[str],
        now: datetime,
    ) -> bool:
        """Stale results and results computed from a different location need a rerun."""
        if result is None or not self.is_fresh(result, now):
            return True
        return location is not None and result.source_location_used != location


__all__ = ["StalenessPolicy"]
