"""Source fetchers that turn entity locations into file trees."""

from __future__ import annotations

from typing import Sequence

from .base import FetcherRegistry, SourceFetcher, normalize_location
from .git import GitFetcher, parse_git_location
from .local import LocalDirectoryFetcher


def default_fetchers(
    exclude_paths: Sequence[str] | None = None, *, clone_timeout: float | None = None
) -> FetcherRegistry:
    """Return the registry used by the service: git remotes first, then local paths."""
    return FetcherRegistry(
        [
            GitFetcher(exclude_paths=exclude_paths, timeout=clone_timeout),
            LocalDirectoryFetcher(exclude_paths),
        ]
    )


__all__ = [
    "FetcherRegistry",
    "GitFetcher",
    "LocalDirectoryFetcher",
    "SourceFetcher",
    "default_fetchers",
    "normalize_location",
    "parse_git_location",
]
