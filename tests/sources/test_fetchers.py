"""Tests for the local and git source fetchers."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from linguist.errors import FetchError, UnsupportedLocation
from linguist.sources import (
    FetcherRegistry,
    GitFetcher,
    LocalDirectoryFetcher,
    default_fetchers,
    normalize_location,
    parse_git_location,
)
from linguist.sources.git import GitLocation
from linguist.sources.local import local_path


def _write(root: Path, relative: str, content: str = "x") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_normalize_location_strips_url_prefix() -> None:
    assert normalize_location(" url:https://github.com/acme/repo ") == "https://github.com/acme/repo"


def test_local_path_accepts_file_urls_and_plain_paths(tmp_path: Path) -> None:
    assert local_path(f"file://{tmp_path}") == tmp_path
    assert local_path(str(tmp_path)) == tmp_path
    assert local_path("https://github.com/acme/repo") is None
    assert local_path("git@github.com:acme/repo.git") is None


def test_local_fetcher_lists_files_with_sizes(tmp_path: Path) -> None:
    _write(tmp_path, "src/main.py", "print('hi')\n")
    _write(tmp_path, "README.md", "# Demo\n")

    tree = LocalDirectoryFetcher().fetch(str(tmp_path))

    assert [(entry.path, entry.size) for entry in tree] == [
        ("README.md", 7),
        ("src/main.py", 12),
    ]
    assert tree.files[1].sample(5) == b"print"


def test_local_fetcher_honours_gitignore_and_excludes(tmp_path: Path) -> None:
    _write(tmp_path, ".gitignore", "dist/\n*.log\n!keep.log\n")
    _write(tmp_path, "dist/bundle.js")
    _write(tmp_path, "debug.log")
    _write(tmp_path, "keep.log")
    _write(tmp_path, "generated/api.py")
    _write(tmp_path, "src/app.py")
    _write(tmp_path, ".git/config")

    tree = LocalDirectoryFetcher(exclude_paths=["generated/"]).fetch(str(tmp_path))

    assert [entry.path for entry in tree] == [".gitignore", "keep.log", "src/app.py"]


def test_local_fetcher_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FetchError):
        LocalDirectoryFetcher().fetch(str(tmp_path / "missing"))


def test_local_fetcher_rejects_files(tmp_path: Path) -> None:
    _write(tmp_path, "file.txt")

    with pytest.raises(FetchError):
        LocalDirectoryFetcher().fetch(str(tmp_path / "file.txt"))


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        (
            "url:https://github.com/acme/payments/tree/main/",
            GitLocation("https://github.com/acme/payments", "main", ""),
        ),
        (
            "https://github.com/acme/payments/tree/release/services/api",
            GitLocation("https://github.com/acme/payments", "release", "services/api"),
        ),
        (
            "https://gitlab.com/acme/payments/-/tree/develop/docs",
            GitLocation("https://gitlab.com/acme/payments", "develop", "docs"),
        ),
        (
            "git@github.com:acme/payments.git#v1.2.0",
            GitLocation("git@github.com:acme/payments.git", "v1.2.0", ""),
        ),
        (
            "https://github.com/acme/payments",
            GitLocation("https://github.com/acme/payments", None, ""),
        ),
    ],
)
def test_parse_git_location(location: str, expected: GitLocation) -> None:
    assert parse_git_location(location) == expected


def test_parse_git_location_ignores_local_paths(tmp_path: Path) -> None:
    assert parse_git_location(str(tmp_path)) is None
    assert parse_git_location(f"file://{tmp_path}") is None


def test_git_fetcher_clones_and_cleans_up() -> None:
    calls: List[List[str]] = []

    def runner(args: List[str]) -> None:
        calls.append(args)
        checkout = Path(args[-1])
        _write(checkout, "services/api/main.go", "package main\n")
        _write(checkout, "README.md", "# Payments\n")

    fetcher = GitFetcher(runner=runner)
    location = "https://github.com/acme/payments/tree/main/services/api"

    with fetcher.fetch(location) as tree:
        checkout = Path(calls[0][-1])
        assert [entry.path for entry in tree] == ["main.go"]
        assert tree.location == location
        assert checkout.exists()

    assert calls[0][:7] == [
        "git",
        "clone",
        "--depth",
        "1",
        "--single-branch",
        "--branch",
        "main",
    ]
    assert calls[0][7] == "https://github.com/acme/payments"
    assert not checkout.parent.exists()


def test_git_fetcher_removes_workdir_when_clone_fails() -> None:
    checkouts: List[Path] = []

    def runner(args: List[str]) -> None:
        checkouts.append(Path(args[-1]))
        raise FetchError("git clone failed with exit code 128: not found")

    with pytest.raises(FetchError):
        GitFetcher(runner=runner).fetch("https://github.com/acme/missing")

    assert not checkouts[0].parent.exists()


def test_git_fetcher_reports_missing_executable() -> None:
    fetcher = GitFetcher(executable="definitely-not-git-binary")

    with pytest.raises(FetchError, match="Unable to locate"):
        fetcher.fetch("https://github.com/acme/payments")


def test_registry_dispatches_to_first_supporting_fetcher(tmp_path: Path) -> None:
    _write(tmp_path, "main.rs", "fn main() {}\n")
    registry = default_fetchers()

    tree = registry.fetch(f"url:file://{tmp_path}")

    assert [entry.path for entry in tree] == ["main.rs"]


def test_registry_rejects_unknown_schemes() -> None:
    registry = FetcherRegistry([LocalDirectoryFetcher()])

    assert registry.supports("s3://bucket/repo") is False
    with pytest.raises(UnsupportedLocation):
        registry.fetch("s3://bucket/repo")
