"""Exception hierarchy shared by the analysis pipeline."""

from __future__ import annotations


class LinguistError(RuntimeError):
    """Base class for all linguist failures."""


class AnalysisError(LinguistError):
    """Raised when an entity could not be analysed.

    ``kind`` is a stable label used for tick failure counters and logs.
    """

    kind = "analysis_error"
    retryable = False

    def __init__(self, entity_ref: str, message: str) -> None:
        super().__init__(f"{entity_ref}: {message}")
        self.entity_ref = entity_ref


class LocationUnavailable(AnalysisError):
    """The entity has no source location the fetchers can resolve."""

    kind = "location_unavailable"


class FetchFailed(AnalysisError):
    """Reading the source tree failed; usually transient."""

    kind = "fetch_failed"
    retryable = True


class AnalysisTimeout(AnalysisError):
    """The run passed its deadline and its partial result was discarded."""

    kind = "timeout"
    retryable = True


class StoreUnavailable(LinguistError):
    """The result store could not be read or written."""


class FetchError(LinguistError):
    """A source fetcher could not produce a file tree."""


class UnsupportedLocation(FetchError):
    """No fetcher understands the given location."""


class CatalogError(LinguistError):
    """The entity catalog could not be queried."""


__all__ = [
    "AnalysisError",
    "AnalysisTimeout",
    "CatalogError",
    "FetchError",
    "FetchFailed",
    "LinguistError",
    "LocationUnavailable",
    "StoreUnavailable",
    "UnsupportedLocation",
]
