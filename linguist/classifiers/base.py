"""Base classes for language classifier plugins."""

from abc import ABC, abstractmethod
from typing import List

from ..models import LanguageTag


class LanguageClassifier(ABC):
    """Contract for classifiers that tag a single file with languages.

    Implementations must be deterministic for identical input and must not
    perform I/O beyond inspecting the provided sample.
    """

    #: Number of leading bytes the analyzer reads for ``sample``.
    sample_size: int = 8192

    @abstractmethod
    def classify(self, path: str, sample: bytes, size: int) -> List[LanguageTag]:
        """Return language tags for ``path``; unknown files yield an empty list."""

    def ignores(self, path: str) -> bool:
        """Return True when the file should not be counted at all."""
        return False
