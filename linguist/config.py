"""Configuration loading for the linguist service (.linguist.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import UNIT_BYTES, UNIT_LINES

CONFIG_FILENAME = ".linguist.yml"

ON_MISS_NOT_FOUND = "not_found"
ON_MISS_COMPUTE = "compute"

_DURATION_UNITS = frozenset({"milliseconds", "seconds", "minutes", "hours", "days", "weeks"})


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ScheduleConfig:
    """Recurring analysis task settings."""

    frequency: timedelta = timedelta(minutes=2)
    timeout: timedelta = timedelta(minutes=15)
    initial_delay: timedelta = timedelta(seconds=15)
    batch_size: int = 20
    prune_orphans: bool = False
    poll_interval: float = 1.0


@dataclass
class CacheConfig:
    """Result freshness and cache-miss behaviour."""

    max_age: timedelta = timedelta(days=30)
    on_miss: str = ON_MISS_NOT_FOUND
    refresh_stale: bool = False


@dataclass
class AnalysisConfig:
    """Aggregation options for the analyzer."""

    unit: str = UNIT_BYTES
    min_share: float = 0.0
    classifier: str = "extension"
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class CatalogEntityConfig:
    """Entity declared directly in the configuration file."""

    ref: str
    kind: Optional[str] = None
    annotations: Dict[str, str] = field(default_factory=dict)


@dataclass
class CatalogConfig:
    """Where tracked entities come from."""

    kinds: List[str] = field(default_factory=lambda: ["API", "Component", "Template"])
    base_url: Optional[str] = None
    token: Optional[str] = None
    request_timeout: float = 30.0
    entities: List[CatalogEntityConfig] = field(default_factory=list)


@dataclass
class DatabaseConfig:
    """Result store backend and location; ``:memory:`` keeps SQLite in process."""

    backend: str = "sqlite"
    path: str = ":memory:"


@dataclass
class ServiceConfig:
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: int = 7007


@dataclass
class LinguistConfig:
    """Represents the settings defined in .linguist.yml."""

    root: Path
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    use_source_location: bool = False
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)


def load_config(config_path: Path) -> LinguistConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return LinguistConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return parse_config(data, root=root)


def parse_config(data: Dict[str, Any], *, root: Path) -> LinguistConfig:
    """Build a config object from an already-decoded mapping."""
    schedule = ScheduleConfig()
    schedule_data = _as_dict(data.get("schedule"))
    if schedule_data:
        schedule.frequency = _duration(schedule_data, "frequency", schedule.frequency)
        schedule.timeout = _duration(schedule_data, "timeout", schedule.timeout)
        schedule.initial_delay = _duration(
            schedule_data, "initial_delay", schedule.initial_delay
        )
        schedule.batch_size = _non_negative_int(
            schedule_data.get("batch_size"), "schedule.batch_size", schedule.batch_size
        )
        prune = _as_bool(schedule_data.get("prune_orphans"))
        if prune is not None:
            schedule.prune_orphans = prune
        poll = _as_float(schedule_data.get("poll_interval"))
        if poll is not None:
            if poll <= 0:
                raise ConfigError("schedule.poll_interval must be positive")
            schedule.poll_interval = poll
    if schedule.frequency <= timedelta(0):
        raise ConfigError("schedule.frequency must be positive")
    if schedule.timeout <= timedelta(0):
        raise ConfigError("schedule.timeout must be positive")

    cache = CacheConfig()
    cache_data = _as_dict(data.get("cache"))
    if cache_data:
        cache.max_age = _duration(cache_data, "max_age", cache.max_age)
        on_miss = _as_str(cache_data.get("on_miss"))
        if on_miss is not None:
            if on_miss not in (ON_MISS_NOT_FOUND, ON_MISS_COMPUTE):
                raise ConfigError(
                    f"cache.on_miss must be '{ON_MISS_NOT_FOUND}' or '{ON_MISS_COMPUTE}'"
                )
            cache.on_miss = on_miss
        refresh_stale = _as_bool(cache_data.get("refresh_stale"))
        if refresh_stale is not None:
            cache.refresh_stale = refresh_stale
    # Top-level `age` is accepted as an alias for cache.max_age.
    if "age" in data and "max_age" not in cache_data:
        cache.max_age = _duration(data, "age", cache.max_age)

    analysis = AnalysisConfig()
    analysis_data = _as_dict(data.get("analysis"))
    if analysis_data:
        unit = _as_str(analysis_data.get("unit"))
        if unit is not None:
            if unit not in (UNIT_BYTES, UNIT_LINES):
                raise ConfigError("analysis.unit must be 'bytes' or 'lines'")
            analysis.unit = unit
        min_share = _as_float(analysis_data.get("min_share"))
        if min_share is not None:
            if not 0 <= min_share < 1:
                raise ConfigError("analysis.min_share must be in [0, 1)")
            analysis.min_share = min_share
        analysis.exclude_paths = _as_str_list(analysis_data.get("exclude_paths"))
        analysis.classifier = _as_str(analysis_data.get("classifier")) or analysis.classifier

    catalog = CatalogConfig()
    catalog_data = _as_dict(data.get("catalog"))
    if catalog_data:
        if "kinds" in catalog_data:
            catalog.kinds = _as_str_list(catalog_data.get("kinds"))
        catalog.base_url = _as_str(catalog_data.get("base_url"))
        catalog.token = _as_str(catalog_data.get("token"))
        timeout = _as_float(catalog_data.get("request_timeout"))
        if timeout is not None:
            catalog.request_timeout = timeout
        catalog.entities = _parse_entities(catalog_data.get("entities"))

    database = DatabaseConfig()
    database_data = _as_dict(data.get("database"))
    backend = _as_str(database_data.get("backend")) if database_data else None
    if backend is not None:
        if backend not in ("sqlite", "memory"):
            raise ConfigError("database.backend must be 'sqlite' or 'memory'")
        database.backend = backend
    db_path = _as_str(database_data.get("path")) if database_data else None
    if db_path:
        database.path = db_path if db_path == ":memory:" else str(root / db_path)

    service = ServiceConfig()
    service_data = _as_dict(data.get("service"))
    if service_data:
        service.host = _as_str(service_data.get("host")) or service.host
        port = _as_int(service_data.get("port"))
        if port is not None:
            service.port = port

    use_source_location = _as_bool(data.get("use_source_location"))

    return LinguistConfig(
        root=root,
        schedule=schedule,
        cache=cache,
        use_source_location=bool(use_source_location),
        analysis=analysis,
        catalog=catalog,
        database=database,
        service=service,
    )


def parse_duration(value: Any) -> timedelta:
    """Convert ``{minutes: 2}`` style mappings or plain seconds to a timedelta."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=float(value))
    if isinstance(value, dict):
        kwargs: Dict[str, float] = {}
        for key, amount in value.items():
            unit = str(key)
            if unit not in _DURATION_UNITS:
                raise ConfigError(f"Unknown duration unit: {key}")
            number = _as_float(amount)
            if number is None:
                raise ConfigError(f"Duration amount for '{key}' must be numeric")
            kwargs[unit] = number
        if not kwargs:
            raise ConfigError("Duration mapping must not be empty")
        return timedelta(**kwargs)
    raise ConfigError(f"Invalid duration: {value!r}")


def _duration(data: Dict[str, Any], key: str, default: timedelta) -> timedelta:
    if data.get(key) is None:
        return default
    try:
        return parse_duration(data[key])
    except ConfigError as exc:
        raise ConfigError(f"{key}: {exc}") from exc


def _parse_entities(value: Any) -> List[CatalogEntityConfig]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("catalog.entities must be a list")
    entities: List[CatalogEntityConfig] = []
    for item in value:
        if not isinstance(item, dict):
            raise ConfigError("catalog.entities entries must be mappings")
        ref = _as_str(item.get("ref"))
        if not ref:
            raise ConfigError("catalog.entities entries require a 'ref'")
        annotations = {
            str(key): str(val)
            for key, val in _as_dict(item.get("annotations")).items()
            if val is not None
        }
        entities.append(
            CatalogEntityConfig(ref=ref, kind=_as_str(item.get("kind")), annotations=annotations)
        )
    return entities


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _non_negative_int(value: Any, name: str, default: int) -> int:
    if value is None:
        return default
    number = _as_int(value)
    if number is None or number < 0:
        raise ConfigError(f"{name} must be a non-negative integer")
    return number


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
