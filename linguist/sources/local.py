"""Filesystem source fetcher honouring .gitignore rules."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from functools import partial
from pathlib import Path
from typing import Iterator, List, Optional, Sequence
from urllib.parse import unquote, urlparse

from .base import SourceFetcher, normalize_location
from ..errors import FetchError
from ..models import FileEntry, FileTree

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or configured excludes."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        kept = []
        for name in dirnames:
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            kept.append(name)
        dirnames[:] = sorted(kept)

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            path = current_dir / filename
            if path.is_symlink() or not path.is_file():
                continue
            yield path


def _read_file(path: Path, limit: Optional[int] = None) -> bytes:
    with path.open("rb") as handle:
        return handle.read() if limit is None else handle.read(limit)


def local_path(location: str) -> Optional[Path]:
    """Return the filesystem path for ``file://`` or bare path locations."""
    cleaned = normalize_location(location)
    if cleaned.startswith("file://"):
        return Path(unquote(urlparse(cleaned).path))
    if "://" in cleaned or cleaned.startswith("git@"):
        return None
    return Path(cleaned).expanduser()


class LocalDirectoryFetcher(SourceFetcher):
    """Reads a source tree straight from a local directory."""

    def __init__(self, exclude_paths: Sequence[str] | None = None) -> None:
        self._exclude_rules = [
            rule
            for rule in (build_ignore_rule(pattern) for pattern in exclude_paths or [])
            if rule is not None
        ]

    def supports(self, location: str) -> bool:
        return local_path(location) is not None

    def fetch(self, location: str) -> FileTree:
        path = local_path(location)
        if path is None:
            raise FetchError(f"Not a local location: {location}")
        return self.fetch_directory(path, location=location)

    def fetch_directory(self, root: Path, *, location: str) -> FileTree:
        root = root.resolve()
        if not root.exists():
            raise FetchError(f"Source path not found: {root}")
        if not root.is_dir():
            raise FetchError(f"Source path is not a directory: {root}")

        rules = _parse_gitignore(root / ".gitignore")
        rules.extend(self._exclude_rules)

        files: List[FileEntry] = []
        try:
            for path in _iter_files(root, rules):
                files.append(
                    FileEntry(
                        path=path.relative_to(root).as_posix(),
                        size=path.stat().st_size,
                        read=partial(_read_file, path),
                    )
                )
        except OSError as exc:
            raise FetchError(f"Failed to walk {root}: {exc}") from exc
        return FileTree(location=location, files=files)


__all__ = ["IgnoreRule", "LocalDirectoryFetcher", "build_ignore_rule", "local_path"]
