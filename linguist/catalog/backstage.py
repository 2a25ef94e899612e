"""HTTP client for a Backstage-compatible software catalog."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .base import EntityCatalog, parse_entity_ref, resolve_location, stringify_entity_ref
from ..errors import CatalogError
from ..logging import get_logger
from ..models import TrackedEntity

Fetch = Callable[[Request, float], Any]


class BackstageCatalog(EntityCatalog):
    """Lists entities of the configured kinds from ``{base_url}/entities``."""

    def __init__(
        self,
        base_url: str,
        *,
        kinds: Sequence[str] = ("API", "Component", "Template"),
        use_source_location: bool = False,
        token: str | None = None,
        request_timeout: float = 30.0,
        fetch: Fetch | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.kinds = list(kinds)
        self.use_source_location = use_source_location
        self.token = token
        self.request_timeout = request_timeout
        self._fetch = fetch or self._http_fetch
        self.logger = get_logger("catalog.backstage")

    def list_tracked_entities(self) -> List[TrackedEntity]:
        query = urlencode([("filter", f"kind={kind}") for kind in self.kinds])
        url = f"{self.base_url}/entities"
        if query:
            url = f"{url}?{query}"
        payload = self._get_json(url)
        if not isinstance(payload, list):
            raise CatalogError("Catalog returned an unexpected payload for /entities")
        entities = [self._to_tracked(item) for item in payload if isinstance(item, dict)]
        tracked = [entity for entity in entities if entity is not None]
        self.logger.debug("Catalog returned %d tracked entities", len(tracked))
        return tracked

    def get_entity(self, entity_ref: str) -> Optional[TrackedEntity]:
        try:
            kind, namespace, name = parse_entity_ref(entity_ref)
        except ValueError:
            return None
        if self.kinds and kind.lower() not in {item.lower() for item in self.kinds}:
            return None
        url = (
            f"{self.base_url}/entities/by-name/"
            f"{quote(kind, safe='')}/{quote(namespace, safe='')}/{quote(name, safe='')}"
        )
        payload = self._get_json(url, allow_missing=True)
        if not isinstance(payload, dict):
            return None
        return self._to_tracked(payload)

    def _to_tracked(self, item: Dict[str, Any]) -> Optional[TrackedEntity]:
        kind = item.get("kind")
        metadata = item.get("metadata")
        if not isinstance(kind, str) or not isinstance(metadata, dict):
            return None
        name = metadata.get("name")
        if not isinstance(name, str):
            return None
        namespace = metadata.get("namespace")
        annotations = metadata.get("annotations")
        if not isinstance(annotations, dict):
            annotations = {}
        return TrackedEntity(
            entity_ref=stringify_entity_ref(
                kind, namespace if isinstance(namespace, str) else None, name
            ),
            location=resolve_location(
                {str(k): str(v) for k, v in annotations.items()},
                use_source_location=self.use_source_location,
            ),
            kind=kind,
        )

    def _get_json(self, url: str, *, allow_missing: bool = False) -> Any:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        request = Request(url, headers=headers, method="GET")
        try:
            return self._fetch(request, self.request_timeout)
        except HTTPError as exc:
            if allow_missing and exc.code == 404:
                return None
            raise CatalogError(f"Catalog request to {url} failed with HTTP {exc.code}") from exc
        except URLError as exc:
            raise CatalogError(f"Catalog request to {url} failed: {exc.reason}") from exc
        except (OSError, ValueError) as exc:
            raise CatalogError(f"Catalog request to {url} failed: {exc}") from exc

    @staticmethod
    def _http_fetch(request: Request, timeout: float) -> Any:
        with urlopen(request, timeout=timeout) as response:
            return json.loads(response.read().decode("utf-8"))


__all__ = ["BackstageCatalog"]
