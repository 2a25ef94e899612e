"""Core data models shared across linguist components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

UNIT_BYTES = "bytes"
UNIT_LINES = "lines"


@dataclass(frozen=True)
class TrackedEntity:
    """Catalog entity scheduled for analysis."""

    entity_ref: str
    location: Optional[str]
    kind: Optional[str] = None


@dataclass
class FileEntry:
    """A file in a fetched source tree.

    ``read(limit)`` loads content lazily, at most ``limit`` bytes when a limit
    is given, so classifiers can work from a sample and the file size alone.
    """

    path: str
    size: int
    read: Callable[[Optional[int]], bytes]

    def sample(self, limit: int) -> bytes:
        return self.read(limit)[:limit]


@dataclass
class FileTree:
    """Relative file paths produced by a source fetcher.

    Use as a context manager so fetchers backed by temporary checkouts can
    remove them once the analyzer is done reading.
    """

    location: str
    files: List[FileEntry] = field(default_factory=list)
    cleanup: Optional[Callable[[], None]] = None

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def __enter__(self) -> "FileTree":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        cleanup, self.cleanup = self.cleanup, None
        if cleanup is not None:
            cleanup()


@dataclass(frozen=True)
class LanguageTag:
    """Classifier output for a single file."""

    language: str
    type: str
    bytes: int


@dataclass(frozen=True)
class LanguageStat:
    """Aggregated amount (bytes or lines) for one language."""

    language: str
    amount: int
    type: str = "programming"


@dataclass
class AnalysisResult:
    """Language breakdown for one entity at one point in time."""

    entity_ref: str
    stats: List[LanguageStat]
    computed_at: datetime
    source_location_used: Optional[str] = None
    unit: str = UNIT_BYTES
    unreadable_files: int = 0

    @property
    def total(self) -> int:
        return sum(stat.amount for stat in self.stats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_ref": self.entity_ref,
            "stats": [_stat_to_dict(stat) for stat in self.stats],
            "computed_at": format_timestamp(self.computed_at),
            "source_location_used": self.source_location_used,
            "unit": self.unit,
            "unreadable_files": self.unreadable_files,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            entity_ref=str(payload["entity_ref"]),
            stats=stats_from_payload(payload.get("stats") or []),
            computed_at=parse_timestamp(str(payload["computed_at"])),
            source_location_used=payload.get("source_location_used"),
            unit=str(payload.get("unit") or UNIT_BYTES),
            unreadable_files=int(payload.get("unreadable_files") or 0),
        )

    def breakdown(self, *, fresh: bool | None = None) -> Dict[str, Any]:
        """Return the public response shape with per-language percentages."""
        total = self.total
        entries = []
        for stat in self.stats:
            percentage = round(stat.amount * 100 / total, 2) if total else 0.0
            entries.append(
                {
                    "name": stat.language,
                    "type": stat.type,
                    "amount": stat.amount,
                    "percentage": percentage,
                }
            )
        payload: Dict[str, Any] = {
            "entityRef": self.entity_ref,
            "languageCount": len(self.stats),
            "total": total,
            "unit": self.unit,
            "processedDate": format_timestamp(self.computed_at),
            "sourceLocation": self.source_location_used,
            "breakdown": entries,
        }
        if fresh is not None:
            payload["fresh"] = fresh
        return payload


def sort_stats(stats: List[LanguageStat]) -> List[LanguageStat]:
    """Order stats by amount descending, then by language name."""
    return sorted(stats, key=lambda stat: (-stat.amount, stat.language))


def stats_from_payload(payload: List[Any]) -> List[LanguageStat]:
    stats: List[LanguageStat] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        language = item.get("language")
        amount = item.get("amount")
        if not isinstance(language, str) or not isinstance(amount, int):
            continue
        stats.append(
            LanguageStat(
                language=language,
                amount=amount,
                type=str(item.get("type") or "programming"),
            )
        )
    return stats


def _stat_to_dict(stat: LanguageStat) -> Dict[str, Any]:
    return {"language": stat.language, "amount": stat.amount, "type": stat.type}


def utcnow() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
