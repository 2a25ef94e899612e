"""Entity catalogs that enumerate what the scheduler analyses."""

from .backstage import BackstageCatalog
from .base import (
    LINGUIST_ANNOTATION,
    SOURCE_LOCATION_ANNOTATION,
    EntityCatalog,
    normalize_entity_ref,
    parse_entity_ref,
    resolve_location,
    stringify_entity_ref,
)
from .static import StaticCatalog

__all__ = [
    "BackstageCatalog",
    "EntityCatalog",
    "LINGUIST_ANNOTATION",
    "SOURCE_LOCATION_ANNOTATION",
    "StaticCatalog",
    "normalize_entity_ref",
    "parse_entity_ref",
    "resolve_location",
    "stringify_entity_ref",
]
