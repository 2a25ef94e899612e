"""Language classifier implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable

from .base import LanguageClassifier
from .extension import ExtensionClassifier

_ENTRY_POINT_GROUP = "linguist.classifiers"
_DEFAULT_NAME = "extension"

_BUILTIN_FACTORIES: dict[str, Callable[[], LanguageClassifier]] = {
    _DEFAULT_NAME: ExtensionClassifier,
}


def load_classifier(name: str | None = None) -> LanguageClassifier:
    """Return the classifier registered under ``name`` (built-in or entry point)."""

    key = (name or _DEFAULT_NAME).lower()
    factory = _BUILTIN_FACTORIES.get(key)
    if factory is not None:
        return factory()

    for entry in _iter_entry_points():
        if entry.name.lower() != key:
            continue
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load classifier entry point '{entry.name}': {exc}") from exc
        return _coerce_classifier(loaded)

    raise ValueError(f"Unknown language classifier: {name}")


def _coerce_classifier(obj: object) -> LanguageClassifier:
    if isinstance(obj, LanguageClassifier):
        return obj
    if isinstance(obj, type) and issubclass(obj, LanguageClassifier):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, LanguageClassifier):
            return instance
    raise TypeError("Classifier entry point must be a LanguageClassifier subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "ExtensionClassifier",
    "LanguageClassifier",
    "load_classifier",
]
