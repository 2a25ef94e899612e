"""Entity catalog contract and annotation helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Mapping, Optional

from ..models import TrackedEntity

SOURCE_LOCATION_ANNOTATION = "backstage.io/source-location"
LINGUIST_ANNOTATION = "backstage.io/linguist"


def resolve_location(
    annotations: Mapping[str, str], *, use_source_location: bool
) -> Optional[str]:
    """Pick the location an entity should be analysed at.

    With ``use_source_location`` the entity's declared source location is used;
    otherwise the dedicated linguist annotation is.
    """
    key = SOURCE_LOCATION_ANNOTATION if use_source_location else LINGUIST_ANNOTATION
    value = annotations.get(key)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def stringify_entity_ref(kind: str, namespace: str | None, name: str) -> str:
    return f"{kind.lower()}:{namespace or 'default'}/{name}"


def parse_entity_ref(entity_ref: str) -> tuple[str, str, str]:
    """Split ``kind:namespace/name`` (namespace optional) into its parts."""
    if ":" not in entity_ref:
        raise ValueError(f"Entity ref must include a kind: {entity_ref}")
    kind, rest = entity_ref.split(":", 1)
    namespace, _, name = rest.rpartition("/")
    if not kind or not name:
        raise ValueError(f"Invalid entity ref: {entity_ref}")
    return kind, namespace or "default", name


def normalize_entity_ref(entity_ref: str) -> str:
    """Return the canonical ``kind:namespace/name`` form; unparseable refs pass through."""
    try:
        kind, namespace, name = parse_entity_ref(entity_ref)
    except ValueError:
        return entity_ref
    return stringify_entity_ref(kind, namespace, name)


class EntityCatalog(ABC):
    """Source of the entities the scheduler keeps analysed."""

    @abstractmethod
    def list_tracked_entities(self) -> List[TrackedEntity]:
        """Return every entity that should carry a language breakdown."""

    def get_entity(self, entity_ref: str) -> Optional[TrackedEntity]:
        """Return one tracked entity, or None when the catalog does not know it."""
        for entity in self.list_tracked_entities():
            if entity.entity_ref == entity_ref:
                return entity
        return None
