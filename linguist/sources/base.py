"""Source fetcher contract and location helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..errors import UnsupportedLocation
from ..models import FileTree

_URL_PREFIX = "url:"


def normalize_location(location: str) -> str:
    """Strip the catalog ``url:`` prefix and surrounding whitespace."""
    cleaned = location.strip()
    if cleaned.startswith(_URL_PREFIX):
        cleaned = cleaned[len(_URL_PREFIX):]
    return cleaned


class SourceFetcher(ABC):
    """Contract for components that turn a location into a file tree."""

    @abstractmethod
    def supports(self, location: str) -> bool:
        """Return True when this fetcher can read ``location``."""

    @abstractmethod
    def fetch(self, location: str) -> FileTree:
        """Return the tree at ``location`` or raise ``FetchError``."""


class FetcherRegistry(SourceFetcher):
    """Dispatches to the first registered fetcher that understands a location."""

    def __init__(self, fetchers: Iterable[SourceFetcher]) -> None:
        self._fetchers: List[SourceFetcher] = list(fetchers)

    def register(self, fetcher: SourceFetcher) -> None:
        self._fetchers.append(fetcher)

    def supports(self, location: str) -> bool:
        return self._select(location) is not None

    def fetch(self, location: str) -> FileTree:
        fetcher = self._select(location)
        if fetcher is None:
            raise UnsupportedLocation(f"No source fetcher supports location: {location}")
        return fetcher.fetch(location)

    def _select(self, location: str) -> Optional[SourceFetcher]:
        for fetcher in self._fetchers:
            if fetcher.supports(location):
                return fetcher
        return None


__all__ = ["FetcherRegistry", "SourceFetcher", "normalize_location"]
