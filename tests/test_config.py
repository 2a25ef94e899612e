"""Tests for linguist.config."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from linguist.config import (
    CONFIG_FILENAME,
    ON_MISS_COMPUTE,
    ConfigError,
    load_config,
    parse_config,
    parse_duration,
)


def test_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.schedule.frequency == timedelta(minutes=2)
    assert config.schedule.timeout == timedelta(minutes=15)
    assert config.schedule.initial_delay == timedelta(seconds=15)
    assert config.cache.max_age == timedelta(days=30)
    assert config.cache.on_miss == "not_found"
    assert config.use_source_location is False
    assert config.catalog.kinds == ["API", "Component", "Template"]
    assert config.database.path == ":memory:"
    assert config.service.port == 7007


def test_load_full_config(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        """
schedule:
  frequency: {minutes: 5}
  timeout: {minutes: 10}
  initial_delay: 30
  batch_size: 5
  prune_orphans: true
cache:
  max_age: {days: 7}
  on_miss: compute
  refresh_stale: yes
use_source_location: true
analysis:
  unit: lines
  min_share: 0.01
  exclude_paths: ["generated/", "*.min.js"]
catalog:
  kinds: [Component]
  entities:
    - ref: component:default/payments
      annotations:
        backstage.io/source-location: url:https://github.com/acme/payments/tree/main/
database:
  path: data/linguist.db
service:
  host: 127.0.0.1
  port: 8080
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.schedule.frequency == timedelta(minutes=5)
    assert config.schedule.timeout == timedelta(minutes=10)
    assert config.schedule.initial_delay == timedelta(seconds=30)
    assert config.schedule.batch_size == 5
    assert config.schedule.prune_orphans is True
    assert config.cache.max_age == timedelta(days=7)
    assert config.cache.on_miss == ON_MISS_COMPUTE
    assert config.cache.refresh_stale is True
    assert config.use_source_location is True
    assert config.analysis.unit == "lines"
    assert config.analysis.min_share == 0.01
    assert config.analysis.exclude_paths == ["generated/", "*.min.js"]
    assert config.catalog.kinds == ["Component"]
    assert config.catalog.entities[0].ref == "component:default/payments"
    assert config.catalog.entities[0].annotations == {
        "backstage.io/source-location": "url:https://github.com/acme/payments/tree/main/"
    }
    assert config.database.path == str(tmp_path.resolve() / "data/linguist.db")
    assert config.service.host == "127.0.0.1"
    assert config.service.port == 8080


def test_load_config_accepts_file_path(tmp_path: Path) -> None:
    path = tmp_path / "custom.yml"
    path.write_text("database:\n  backend: memory\n", encoding="utf-8")

    assert load_config(path).database.backend == "memory"


def test_top_level_age_aliases_max_age(tmp_path: Path) -> None:
    config = parse_config({"age": {"days": 14}}, root=tmp_path)

    assert config.cache.max_age == timedelta(days=14)


def test_parse_duration() -> None:
    assert parse_duration(90) == timedelta(seconds=90)
    assert parse_duration({"hours": 1, "minutes": 30}) == timedelta(minutes=90)
    with pytest.raises(ConfigError):
        parse_duration({"fortnights": 1})
    with pytest.raises(ConfigError):
        parse_duration(True)
    with pytest.raises(ConfigError):
        parse_duration("soon")


@pytest.mark.parametrize(
    "data",
    [
        {"schedule": {"frequency": 0}},
        {"schedule": {"batch_size": -1}},
        {"cache": {"on_miss": "block"}},
        {"analysis": {"unit": "tokens"}},
        {"analysis": {"min_share": 1.5}},
        {"database": {"backend": "postgres"}},
        {"catalog": {"entities": [{"kind": "Component"}]}},
    ],
)
def test_invalid_values_raise(tmp_path: Path, data: dict) -> None:
    with pytest.raises(ConfigError):
        parse_config(data, root=tmp_path)


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("schedule: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
