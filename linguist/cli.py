"""CLI entrypoints for linguist commands."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

from .analyzer import Analyzer
from .bootstrap import build_runtime
from .classifiers import load_classifier
from .config import ConfigError, load_config
from .errors import AnalysisError, LinguistError
from .logging import configure_logging
from .models import UNIT_BYTES, UNIT_LINES, format_timestamp
from .scheduler import TickReport
from .sources import default_fetchers


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        default=".",
        help="Path to .linguist.yml or the directory containing it (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linguist",
        description="Keep cached language breakdowns for catalog entities.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service with the background scheduler.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_config_option(serve_parser)
    serve_parser.add_argument("--host", default=None, help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on.")

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyse a local directory or git URL once and print the breakdown.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "location",
        nargs="?",
        default=".",
        help="Directory, file:// URL or git URL to analyse (defaults to current directory).",
    )
    analyze_parser.add_argument(
        "--unit",
        choices=(UNIT_BYTES, UNIT_LINES),
        default=UNIT_BYTES,
        help="Measure languages by bytes or by lines.",
    )
    analyze_parser.add_argument(
        "--entity-ref",
        default="location:default/local",
        help="Entity ref to label the result with.",
    )

    tick_parser = subparsers.add_parser(
        "tick",
        help="Run a single scheduler tick against the configured store and catalog.",
    )
    _add_verbose_option(tick_parser, suppress_default=True)
    _add_config_option(tick_parser)

    show_parser = subparsers.add_parser(
        "show",
        help="Print the stored breakdown for an entity.",
    )
    _add_verbose_option(show_parser, suppress_default=True)
    _add_config_option(show_parser)
    show_parser.add_argument("entity_ref", help="Entity ref, e.g. component:default/payments.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for linguist commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "analyze":
        analyzer = Analyzer(default_fetchers(), load_classifier(), unit=args.unit)
        location = _normalise_location(args.location)
        try:
            result = analyzer.analyze(args.entity_ref, location)
        except AnalysisError as exc:
            parser.exit(1, f"linguist analyze failed: {exc}\n")
        _print_json(result.breakdown())
        return

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")

    if args.command == "serve":
        from .service import run_service

        run_service(Path(args.config), host=args.host, port=args.port)
    elif args.command == "tick":
        runtime = build_runtime(config)
        try:
            report = runtime.scheduler.tick()
        finally:
            runtime.close()
        _print_json(_report_to_dict(report))
        if report.failed:
            parser.exit(2)
    elif args.command == "show":
        runtime = build_runtime(config)
        try:
            result = runtime.facade.get(args.entity_ref)
            fresh = runtime.facade.is_fresh(result)
        except LinguistError as exc:
            parser.exit(1, f"linguist show failed: {exc}\n")
        finally:
            runtime.close()
        if result is None:
            parser.exit(1, f"No language breakdown stored for {args.entity_ref}\n")
        _print_json(result.breakdown(fresh=fresh))
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _normalise_location(location: str) -> str:
    if "://" in location or location.startswith(("git@", "url:")):
        return location
    return str(Path(location).expanduser().resolve())


def _report_to_dict(report: TickReport) -> Dict[str, Any]:
    data = asdict(report)
    data["started_at"] = format_timestamp(report.started_at)
    data["finished_at"] = format_timestamp(report.finished_at) if report.finished_at else None
    return data


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


if __name__ == "__main__":  # pragma: no cover
    main()
