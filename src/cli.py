"""Command-line interface for layerguard."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pipeline import analyze
from report.render import render_edgelist, render_graph_json, render_json, render_text
from report.sink import write_report
from rules.config import ConfigurationError, apply_overrides, load_config
from verify.verify import verify_determinism


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root (default: .)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config file (default: <root>/layerguard.toml if present)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )


def _parse_alias(value: str) -> tuple[str, str]:
    key, sep, target = value.partition("=")
    if not sep or not key or not target:
        msg = f"expected KEY=TARGET, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return key, target


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="layerguard",
        description="Check dependency boundaries between front-end layers.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Check layer boundaries")
    _add_common_paths(check_parser)
    check_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format (default: text)",
    )
    check_parser.add_argument(
        "--fail-on",
        choices=("error", "warning"),
        default=None,
        help="Lowest severity that fails the run (default: config, else error)",
    )
    check_parser.add_argument(
        "--include",
        action="append",
        default=[],
        metavar="GLOB",
        help="Only scan files matching GLOB (repeatable)",
    )
    check_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="GLOB",
        help="Skip files matching GLOB (repeatable)",
    )
    check_parser.add_argument(
        "--alias",
        action="append",
        default=[],
        type=_parse_alias,
        metavar="KEY=TARGET",
        help="Add an import alias, e.g. '@/*=src/*' (repeatable)",
    )
    check_parser.add_argument(
        "--output",
        default=None,
        help="Write the report to this file instead of stdout",
    )
    check_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print violations and the summary line",
    )
    check_parser.add_argument(
        "--no-context",
        action="store_true",
        help="Do not print source lines under violations",
    )
    check_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Scanner thread count (default: config)",
    )

    graph_parser = subparsers.add_parser("graph", help="Print the module graph")
    _add_common_paths(graph_parser)
    graph_parser.add_argument(
        "--format",
        choices=("edgelist", "json"),
        default="edgelist",
        help="Graph format (default: edgelist)",
    )
    graph_parser.add_argument(
        "--externals",
        action="store_true",
        help="Include imports that leave the module graph",
    )

    verify_parser = subparsers.add_parser(
        "verify", help="Verify the report does not depend on scan order"
    )
    _add_common_paths(verify_parser)

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _resolve_config_path(config: str | None) -> Path | None:
    if config is None:
        return None
    return Path(config).expanduser().resolve()


def _alias_overrides(pairs: list[tuple[str, str]]) -> dict[str, list[str]]:
    aliases: dict[str, list[str]] = {}
    for key, target in pairs:
        aliases.setdefault(key, []).append(target)
    return aliases


def _handle_check(root: Path, args: argparse.Namespace) -> int:
    config = load_config(root, _resolve_config_path(args.config))
    config = apply_overrides(
        config,
        include=args.include,
        exclude=args.exclude,
        aliases=_alias_overrides(args.alias),
        fail_on=args.fail_on,
        workers=args.workers,
    )
    result = analyze(root, config)

    if args.format == "json":
        content = render_json(result)
    else:
        content = render_text(result, quiet=args.quiet, context=not args.no_context)

    output = Path(args.output).expanduser().resolve() if args.output else None
    write_report(content, output)
    return 0 if result.passed else 1


def _handle_graph(root: Path, args: argparse.Namespace) -> int:
    config = load_config(root, _resolve_config_path(args.config))
    result = analyze(root, config)
    if args.format == "json":
        content = render_graph_json(result, externals=args.externals)
    else:
        content = render_edgelist(result, externals=args.externals)
    write_report(content)
    return 0


def _handle_verify(root: Path, args: argparse.Namespace) -> int:
    config = load_config(root, _resolve_config_path(args.config))
    result = verify_determinism(root=root, config=config)
    if not result.ok:
        sys.stderr.write(
            f"report differs between runs at line {result.first_difference()}\n"
        )
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    root = Path(args.root).expanduser().resolve()

    handlers = {
        "check": _handle_check,
        "graph": _handle_graph,
        "verify": _handle_verify,
    }
    handler = handlers.get(args.command)
    if handler is None:
        raise AssertionError

    try:
        return handler(root, args)
    except ConfigurationError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2
    except OSError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
