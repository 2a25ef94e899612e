"""Extension, filename and shebang based language detection."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

from .base import LanguageClassifier
from ..models import LanguageTag

PROGRAMMING = "programming"
MARKUP = "markup"
DATA = "data"
PROSE = "prose"

_LANGUAGE_BY_SUFFIX: Dict[str, Tuple[str, str]] = {
    ".py": ("Python", PROGRAMMING),
    ".pyi": ("Python", PROGRAMMING),
    ".js": ("JavaScript", PROGRAMMING),
    ".mjs": ("JavaScript", PROGRAMMING),
    ".cjs": ("JavaScript", PROGRAMMING),
    ".jsx": ("JavaScript", PROGRAMMING),
    ".ts": ("TypeScript", PROGRAMMING),
    ".tsx": ("TSX", PROGRAMMING),
    ".java": ("Java", PROGRAMMING),
    ".kt": ("Kotlin", PROGRAMMING),
    ".kts": ("Kotlin", PROGRAMMING),
    ".go": ("Go", PROGRAMMING),
    ".rs": ("Rust", PROGRAMMING),
    ".rb": ("Ruby", PROGRAMMING),
    ".php": ("PHP", PROGRAMMING),
    ".cs": ("C#", PROGRAMMING),
    ".c": ("C", PROGRAMMING),
    ".h": ("C", PROGRAMMING),
    ".cpp": ("C++", PROGRAMMING),
    ".hpp": ("C++", PROGRAMMING),
    ".cc": ("C++", PROGRAMMING),
    ".hh": ("C++", PROGRAMMING),
    ".swift": ("Swift", PROGRAMMING),
    ".m": ("Objective-C", PROGRAMMING),
    ".mm": ("Objective-C++", PROGRAMMING),
    ".scala": ("Scala", PROGRAMMING),
    ".r": ("R", PROGRAMMING),
    ".jl": ("Julia", PROGRAMMING),
    ".sh": ("Shell", PROGRAMMING),
    ".bash": ("Shell", PROGRAMMING),
    ".ps1": ("PowerShell", PROGRAMMING),
    ".bat": ("Batchfile", PROGRAMMING),
    ".cmd": ("Batchfile", PROGRAMMING),
    ".sql": ("SQL", DATA),
    ".html": ("HTML", MARKUP),
    ".htm": ("HTML", MARKUP),
    ".css": ("CSS", MARKUP),
    ".scss": ("SCSS", MARKUP),
    ".xml": ("XML", DATA),
    ".yaml": ("YAML", DATA),
    ".yml": ("YAML", DATA),
    ".json": ("JSON", DATA),
    ".toml": ("TOML", DATA),
    ".md": ("Markdown", PROSE),
    ".markdown": ("Markdown", PROSE),
    ".rst": ("reStructuredText", PROSE),
    ".txt": ("Text", PROSE),
}

_LANGUAGE_BY_FILENAME: Dict[str, Tuple[str, str]] = {
    "dockerfile": ("Dockerfile", PROGRAMMING),
    "makefile": ("Makefile", PROGRAMMING),
    "gnumakefile": ("Makefile", PROGRAMMING),
    "rakefile": ("Ruby", PROGRAMMING),
    "gemfile": ("Ruby", PROGRAMMING),
    "jenkinsfile": ("Groovy", PROGRAMMING),
}

_INTERPRETERS: Dict[str, Tuple[str, str]] = {
    "python": ("Python", PROGRAMMING),
    "node": ("JavaScript", PROGRAMMING),
    "ruby": ("Ruby", PROGRAMMING),
    "bash": ("Shell", PROGRAMMING),
    "sh": ("Shell", PROGRAMMING),
    "zsh": ("Shell", PROGRAMMING),
    "perl": ("Perl", PROGRAMMING),
    "php": ("PHP", PROGRAMMING),
}

_IGNORED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "vendor",
    "dist",
    "build",
    "__pycache__",
    ".venv",
}

_SHEBANG_RE = re.compile(rb"^#!\s*(\S+)(?:\s+(\S+))?")
_INTERPRETER_VERSION_RE = re.compile(r"[\d.]+$")


class ExtensionClassifier(LanguageClassifier):
    """Classifies files by name, suffix and shebang.

    Byte counts are the file size as reported by the fetcher; content is only
    sampled to detect binaries and interpreter lines.
    """

    def classify(self, path: str, sample: bytes, size: int) -> List[LanguageTag]:
        if b"\x00" in sample:
            return []
        detected = self._detect(path, sample)
        if detected is None:
            return []
        language, language_type = detected
        return [LanguageTag(language=language, type=language_type, bytes=size)]

    def ignores(self, path: str) -> bool:
        parts = PurePosixPath(path).parts[:-1]
        return any(part in _IGNORED_DIRS for part in parts)

    def _detect(self, path: str, sample: bytes) -> Optional[Tuple[str, str]]:
        name = PurePosixPath(path).name
        by_name = _LANGUAGE_BY_FILENAME.get(name.lower())
        if by_name is not None:
            return by_name
        suffix = PurePosixPath(name).suffix.lower()
        if suffix:
            return _LANGUAGE_BY_SUFFIX.get(suffix)
        return _detect_shebang(sample)


def _detect_shebang(sample: bytes) -> Optional[Tuple[str, str]]:
    match = _SHEBANG_RE.match(sample)
    if not match:
        return None
    command = match.group(1).decode("utf-8", "replace").rsplit("/", 1)[-1]
    if command == "env" and match.group(2):
        command = match.group(2).decode("utf-8", "replace")
    command = _INTERPRETER_VERSION_RE.sub("", command)
    return _INTERPRETERS.get(command)


__all__ = ["ExtensionClassifier", "DATA", "MARKUP", "PROGRAMMING", "PROSE"]
