"""Turns a fetched source tree into per-language statistics."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from .classifiers import ExtensionClassifier, LanguageClassifier
from .clock import Clock, SystemClock
from .errors import (
    AnalysisTimeout,
    FetchError,
    FetchFailed,
    LocationUnavailable,
    UnsupportedLocation,
)
from .logging import get_logger
from .models import (
    UNIT_BYTES,
    UNIT_LINES,
    AnalysisResult,
    FileEntry,
    LanguageStat,
    sort_stats,
)
from .sources import SourceFetcher, normalize_location


def count_lines(data: bytes) -> int:
    """Newline count plus one for a trailing line without a terminator."""
    if not data:
        return 0
    lines = data.count(b"\n")
    if not data.endswith(b"\n"):
        lines += 1
    return lines


class Analyzer:
    """Fetches an entity's sources and aggregates classifier output.

    The analyzer holds no state between runs; each ``analyze`` call either
    returns a complete result or raises an ``AnalysisError``.
    """

    def __init__(
        self,
        fetcher: SourceFetcher,
        classifier: LanguageClassifier | None = None,
        *,
        unit: str = UNIT_BYTES,
        min_share: float = 0.0,
        clock: Clock | None = None,
    ) -> None:
        if unit not in (UNIT_BYTES, UNIT_LINES):
            raise ValueError(f"Unsupported unit: {unit}")
        self.fetcher = fetcher
        self.classifier = classifier or ExtensionClassifier()
        self.unit = unit
        self.min_share = min_share
        self.clock = clock or SystemClock()
        self.logger = get_logger("analyzer")

    def analyze(
        self,
        entity_ref: str,
        location: Optional[str],
        *,
        deadline: datetime | None = None,
    ) -> AnalysisResult:
        """Return the language breakdown for ``entity_ref`` at ``location``."""
        if not location or not normalize_location(location):
            raise LocationUnavailable(entity_ref, "no source location")

        # computed_at marks when the sources were read, not when the run finished.
        started = self.clock.now()
        try:
            tree = self.fetcher.fetch(location)
        except UnsupportedLocation as exc:
            raise LocationUnavailable(entity_ref, str(exc)) from exc
        except FetchError as exc:
            raise FetchFailed(entity_ref, str(exc)) from exc
        except OSError as exc:
            raise FetchFailed(entity_ref, f"I/O error reading {location}: {exc}") from exc

        with tree:
            self._check_deadline(entity_ref, deadline)
            totals: Dict[str, int] = defaultdict(int)
            types: Dict[str, str] = {}
            unreadable = 0
            for entry in tree:
                self._check_deadline(entity_ref, deadline)
                if self.classifier.ignores(entry.path):
                    continue
                try:
                    amounts = self._classify(entry)
                except OSError as exc:
                    unreadable += 1
                    self.logger.debug("Skipping unreadable file %s: %s", entry.path, exc)
                    continue
                for language, language_type, amount in amounts:
                    totals[language] += amount
                    types.setdefault(language, language_type)
            self._check_deadline(entity_ref, deadline)

        if unreadable:
            self.logger.warning(
                "Analysis of %s skipped %d unreadable file(s)", entity_ref, unreadable
            )

        stats = self._build_stats(totals, types)
        return AnalysisResult(
            entity_ref=entity_ref,
            stats=stats,
            computed_at=started,
            source_location_used=location,
            unit=self.unit,
            unreadable_files=unreadable,
        )

    def _classify(self, entry: FileEntry) -> List[tuple[str, str, int]]:
        sample = entry.sample(self.classifier.sample_size)
        tags = self.classifier.classify(entry.path, sample, entry.size)
        if not tags:
            return []
        if self.unit == UNIT_BYTES:
            return [(tag.language, tag.type, tag.bytes) for tag in tags]
        # Line counts need the full content; split across tags by byte share.
        lines = count_lines(entry.read(None))
        tagged_bytes = sum(tag.bytes for tag in tags) or 1
        return [
            (tag.language, tag.type, round(lines * tag.bytes / tagged_bytes))
            for tag in tags
        ]

    def _build_stats(self, totals: Dict[str, int], types: Dict[str, str]) -> List[LanguageStat]:
        grand_total = sum(totals.values())
        stats: List[LanguageStat] = []
        for language, amount in totals.items():
            if self.min_share and grand_total and amount / grand_total < self.min_share:
                continue
            stats.append(LanguageStat(language=language, amount=amount, type=types[language]))
        return sort_stats(stats)

    def _check_deadline(self, entity_ref: str, deadline: datetime | None) -> None:
        if deadline is not None and self.clock.now() >= deadline:
            raise AnalysisTimeout(entity_ref, "analysis exceeded its deadline")


__all__ = ["Analyzer", "count_lines"]
