"""CLI behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from linguist.cli import _build_parser, main
from linguist.config import CONFIG_FILENAME


def _make_repo(root: Path) -> Path:
    repo = root / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "src" / "main.py").write_text("print('hello')\n", encoding="utf-8")
    (repo / "README.md").write_text("# Repo\n", encoding="utf-8")
    return repo


def _write_config(root: Path, repo: Path) -> None:
    (root / CONFIG_FILENAME).write_text(
        "\n".join(
            [
                "database:",
                "  path: linguist.db",
                "catalog:",
                "  entities:",
                "    - ref: component:default/repo",
                "      annotations:",
                f"        backstage.io/linguist: {repo.as_posix()}",
                "",
            ]
        ),
        encoding="utf-8",
    )


def test_cli_accepts_verbose_before_command() -> None:
    args = _build_parser().parse_args(["--verbose", "tick"])
    assert args.verbose is True
    assert args.command == "tick"


def test_cli_accepts_verbose_after_command() -> None:
    args = _build_parser().parse_args(["show", "component:default/a", "--verbose"])
    assert args.verbose is True
    assert args.entity_ref == "component:default/a"


def test_cli_accepts_log_file(tmp_path: Path) -> None:
    args = _build_parser().parse_args(["--log-file", str(tmp_path / "linguist.log"), "tick"])
    assert args.log_file == tmp_path / "linguist.log"


def test_serve_accepts_host_and_port() -> None:
    args = _build_parser().parse_args(["serve", "--host", "127.0.0.1", "--port", "9000"])
    assert args.host == "127.0.0.1"
    assert args.port == 9000
    assert args.config == "."


def test_analyze_prints_breakdown(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _make_repo(tmp_path)

    main(["analyze", str(repo), "--unit", "lines", "--entity-ref", "component:default/repo"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["entityRef"] == "component:default/repo"
    assert payload["unit"] == "lines"
    assert {entry["name"]: entry["amount"] for entry in payload["breakdown"]} == {
        "Python": 1,
        "Markdown": 1,
    }


def test_analyze_missing_directory_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["analyze", str(tmp_path / "missing")])
    assert excinfo.value.code == 1


def test_tick_then_show(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _make_repo(tmp_path)
    _write_config(tmp_path, repo)

    main(["tick", "--config", str(tmp_path)])
    report = json.loads(capsys.readouterr().out)
    assert report["status"] == "completed"
    assert report["analyzed"] == 1
    assert report["failures"] == {}

    main(["show", "component:default/repo", "--config", str(tmp_path)])
    payload = json.loads(capsys.readouterr().out)
    assert payload["fresh"] is True
    assert payload["sourceLocation"] == repo.as_posix()
    assert [entry["name"] for entry in payload["breakdown"]] == ["Python", "Markdown"]


def test_show_unknown_entity_exits(tmp_path: Path) -> None:
    _write_config(tmp_path, _make_repo(tmp_path))

    with pytest.raises(SystemExit) as excinfo:
        main(["show", "component:default/ghost", "--config", str(tmp_path)])
    assert excinfo.value.code == 1


def test_invalid_config_exits(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("cache:\n  on_miss: block\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["tick", "--config", str(tmp_path)])
    assert excinfo.value.code == 1
