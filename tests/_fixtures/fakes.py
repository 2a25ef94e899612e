"""Deterministic collaborators for scheduler, analyzer and facade tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Mapping, Optional, Union

from linguist.catalog import EntityCatalog
from linguist.errors import CatalogError, UnsupportedLocation
from linguist.models import FileEntry, FileTree, TrackedEntity
from linguist.sources import SourceFetcher

TreeSpec = Union[Mapping[str, bytes], Exception]


def _reader(data: bytes) -> Callable[[Optional[int]], bytes]:
    def read(limit: Optional[int] = None) -> bytes:
        return data if limit is None else data[:limit]

    return read


def make_tree(location: str, files: Mapping[str, bytes]) -> FileTree:
    return FileTree(
        location=location,
        files=[FileEntry(path=path, size=len(data), read=_reader(data)) for path, data in files.items()],
    )


class FakeFetcher(SourceFetcher):
    """Serves in-memory trees keyed by location; records every fetch."""

    def __init__(self, trees: Mapping[str, TreeSpec] | None = None) -> None:
        self.trees: Dict[str, TreeSpec] = dict(trees or {})
        self.calls: List[str] = []
        self.on_fetch: Callable[[str], None] | None = None

    def supports(self, location: str) -> bool:
        return location in self.trees

    def fetch(self, location: str) -> FileTree:
        self.calls.append(location)
        if self.on_fetch is not None:
            self.on_fetch(location)
        spec = self.trees.get(location)
        if spec is None:
            raise UnsupportedLocation(f"unknown location {location}")
        if isinstance(spec, Exception):
            raise spec
        return make_tree(location, spec)


class FakeCatalog(EntityCatalog):
    """Mutable entity list; set ``error`` to make listing fail."""

    def __init__(self, entities: List[TrackedEntity] | None = None) -> None:
        self.entities: List[TrackedEntity] = list(entities or [])
        self.error: CatalogError | None = None
        self.lookups = 0

    def list_tracked_entities(self) -> List[TrackedEntity]:
        if self.error is not None:
            raise self.error
        return list(self.entities)

    def get_entity(self, entity_ref: str) -> Optional[TrackedEntity]:
        self.lookups += 1
        return super().get_entity(entity_ref)


def go_and_markdown_tree() -> Dict[str, bytes]:
    """Ten 100-byte Go files and five 50-byte Markdown files."""
    files = {f"pkg/file{index}.go": b"g" * 100 for index in range(10)}
    files.update({f"docs/page{index}.md": b"m" * 50 for index in range(5)})
    return files


__all__ = ["FakeCatalog", "FakeFetcher", "go_and_markdown_tree", "make_tree"]
