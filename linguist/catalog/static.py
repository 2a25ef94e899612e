"""Catalog backed by entities declared in .linguist.yml."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .base import EntityCatalog, normalize_entity_ref, resolve_location
from ..config import CatalogEntityConfig
from ..models import TrackedEntity


class StaticCatalog(EntityCatalog):
    """Fixed entity list; kinds are filtered case-insensitively."""

    def __init__(
        self,
        entities: Iterable[CatalogEntityConfig],
        *,
        use_source_location: bool = False,
        kinds: Sequence[str] | None = None,
    ) -> None:
        allowed = {kind.lower() for kind in kinds} if kinds else None
        self._entities: List[TrackedEntity] = []
        for entity in entities:
            kind = entity.kind or entity.ref.split(":", 1)[0]
            if allowed is not None and kind.lower() not in allowed:
                continue
            self._entities.append(
                TrackedEntity(
                    entity_ref=normalize_entity_ref(entity.ref),
                    location=resolve_location(
                        entity.annotations, use_source_location=use_source_location
                    ),
                    kind=kind,
                )
            )

    def list_tracked_entities(self) -> List[TrackedEntity]:
        return list(self._entities)
