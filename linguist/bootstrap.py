"""Wires configuration, store, catalog, analyzer, scheduler and facade together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .analyzer import Analyzer
from .catalog import BackstageCatalog, EntityCatalog, StaticCatalog
from .classifiers import LanguageClassifier, load_classifier
from .clock import Clock, SystemClock
from .config import LinguistConfig
from .facade import QueryFacade
from .logging import get_logger
from .scheduler import Scheduler
from .sources import SourceFetcher, default_fetchers
from .staleness import StalenessPolicy
from .stores import MemoryResultStore, ResultStore, SQLiteResultStore


@dataclass
class Runtime:
    """Everything a running service process owns."""

    config: LinguistConfig
    store: ResultStore
    catalog: EntityCatalog
    analyzer: Analyzer
    policy: StalenessPolicy
    scheduler: Scheduler
    facade: QueryFacade

    def close(self) -> None:
        self.scheduler.stop()
        self.facade.shutdown(wait=False)
        self.store.close()


def build_store(config: LinguistConfig) -> ResultStore:
    if config.database.backend == "memory":
        return MemoryResultStore()
    return SQLiteResultStore(config.database.path)


def build_catalog(config: LinguistConfig) -> EntityCatalog:
    catalog_config = config.catalog
    if catalog_config.base_url:
        return BackstageCatalog(
            catalog_config.base_url,
            kinds=catalog_config.kinds,
            use_source_location=config.use_source_location,
            token=catalog_config.token,
            request_timeout=catalog_config.request_timeout,
        )
    return StaticCatalog(
        catalog_config.entities,
        use_source_location=config.use_source_location,
        kinds=catalog_config.kinds,
    )


def build_runtime(
    config: LinguistConfig,
    *,
    clock: Clock | None = None,
    store: Optional[ResultStore] = None,
    catalog: Optional[EntityCatalog] = None,
    fetcher: Optional[SourceFetcher] = None,
    classifier: Optional[LanguageClassifier] = None,
) -> Runtime:
    """Assemble the service from configuration; collaborators may be overridden."""
    logger = get_logger("bootstrap")
    clock = clock or SystemClock()
    store = store or build_store(config)
    catalog = catalog or build_catalog(config)
    fetcher = fetcher or default_fetchers(
        config.analysis.exclude_paths,
        clone_timeout=config.schedule.timeout.total_seconds(),
    )
    classifier = classifier or load_classifier(config.analysis.classifier)

    analyzer = Analyzer(
        fetcher,
        classifier,
        unit=config.analysis.unit,
        min_share=config.analysis.min_share,
        clock=clock,
    )
    policy = StalenessPolicy(max_age=config.cache.max_age)
    scheduler = Scheduler(catalog, analyzer, store, policy, config.schedule, clock=clock)
    facade = QueryFacade(
        store,
        policy,
        scheduler,
        catalog,
        on_miss=config.cache.on_miss,
        refresh_stale=config.cache.refresh_stale,
    )
    logger.debug(
        "Runtime assembled (store=%s catalog=%s max_age=%s)",
        type(store).__name__,
        type(catalog).__name__,
        config.cache.max_age,
    )
    return Runtime(
        config=config,
        store=store,
        catalog=catalog,
        analyzer=analyzer,
        policy=policy,
        scheduler=scheduler,
        facade=facade,
    )


__all__ = ["Runtime", "build_catalog", "build_runtime", "build_store"]
