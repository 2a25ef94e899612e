"""Git source fetcher backed by shallow clones."""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Sequence

from .base import SourceFetcher, normalize_location
from .local import LocalDirectoryFetcher
from ..errors import FetchError
from ..logging import get_logger
from ..models import FileTree

# GitHub/GitLab/Bitbucket style browse URLs: <repo>/tree/<ref>/... or <repo>/-/tree/<ref>/...
_TREE_RE = re.compile(r"^(?P<repo>.+?)(?:/-)?/(?:tree|blob|src)/(?P<ref>[^/]+)(?:/(?P<subpath>.*))?$")


@dataclass(frozen=True)
class GitLocation:
    """Repository URL plus optional ref and sub-directory."""

    repo_url: str
    ref: Optional[str] = None
    subpath: str = ""


def parse_git_location(location: str) -> Optional[GitLocation]:
    """Split a catalog source location into clone URL, ref and sub-path."""
    cleaned = normalize_location(location)
    if not (cleaned.startswith(("https://", "http://", "ssh://", "git@")) or cleaned.endswith(".git")):
        return None

    ref: Optional[str] = None
    if "#" in cleaned:
        cleaned, ref = cleaned.split("#", 1)
        ref = ref or None

    subpath = ""
    match = _TREE_RE.match(cleaned.rstrip("/"))
    if match:
        cleaned = match.group("repo")
        ref = ref or match.group("ref")
        subpath = (match.group("subpath") or "").strip("/")

    return GitLocation(repo_url=cleaned.rstrip("/"), ref=ref, subpath=subpath)


class GitFetcher(SourceFetcher):
    """Clones the repository into a temporary directory and walks it."""

    def __init__(
        self,
        *,
        executable: str = "git",
        exclude_paths: Sequence[str] | None = None,
        timeout: float | None = None,
        runner: Callable[..., None] | None = None,
    ) -> None:
        self._executable = executable
        self._timeout = timeout
        self._walker = LocalDirectoryFetcher(exclude_paths)
        self._runner = runner or self._default_runner
        self.logger = get_logger("sources.git")

    def supports(self, location: str) -> bool:
        return parse_git_location(location) is not None

    def fetch(self, location: str) -> FileTree:
        parsed = parse_git_location(location)
        if parsed is None:
            raise FetchError(f"Not a git location: {location}")

        workdir = Path(tempfile.mkdtemp(prefix="linguist-"))
        cleanup = partial(shutil.rmtree, workdir, ignore_errors=True)
        checkout = workdir / "checkout"
        args = [self._executable, "clone", "--depth", "1", "--single-branch"]
        if parsed.ref:
            args.extend(["--branch", parsed.ref])
        args.extend([parsed.repo_url, str(checkout)])

        self.logger.debug("Cloning %s (ref=%s)", parsed.repo_url, parsed.ref or "default")
        try:
            self._runner(args)
            root = checkout / parsed.subpath if parsed.subpath else checkout
            tree = self._walker.fetch_directory(root, location=location)
        except Exception:
            cleanup()
            raise
        tree.cleanup = cleanup
        return tree

    def _default_runner(self, args: list[str]) -> None:
        try:
            subprocess.run(
                args,
                check=True,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:
            raise FetchError(f"Unable to locate '{self._executable}' executable") from exc
        except subprocess.TimeoutExpired as exc:
            raise FetchError(f"git clone timed out after {exc.timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            raise FetchError(
                f"git clone failed with exit code {exc.returncode}: {exc.stderr.strip()}"
            ) from exc


__all__ = ["GitFetcher", "GitLocation", "parse_git_location"]
