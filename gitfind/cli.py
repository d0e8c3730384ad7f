"""CLI entrypoints for gitfind commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from .config import ConfigError, DEFAULT_DATABASE, load_config
from .fs import iter_candidates
from .git import GitInspector
from .host import current_host
from .logging import configure_logging, get_logger
from .models import facts_to_dict, location_to_dict
from .pipeline import FindPipeline
from .stores import StoreError, ViewStore


def _add_logging_options(parser: argparse.ArgumentParser, *, subcommand: bool = False) -> None:
    # Subcommands must not reset values given before the command name.
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if subcommand else False,
        help="Log debug output while walking and inspecting.",
    )
    parser.add_argument(
        "--log-level",
        default=argparse.SUPPRESS if subcommand else None,
        help="Explicit log level (DEBUG, INFO, WARNING, ERROR); overrides --verbose.",
    )


def _add_db_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        dest="database",
        default=None,
        help=f"SQLite database holding the views (defaults to {DEFAULT_DATABASE}).",
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitfind",
        description="Discover git repositories, follow their remotes and record what was found.",
    )
    _add_logging_options(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    find_parser = subparsers.add_parser(
        "find",
        help="Find all git repos under the given directories.",
    )
    _add_logging_options(find_parser, subcommand=True)
    _add_db_option(find_parser)
    find_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .gitfind.yml file (defaults to ~/.gitfind.yml when present).",
    )
    find_parser.add_argument(
        "-f",
        "--follow",
        action="store_true",
        default=None,
        help="Follow symbolic links.",
    )
    find_parser.add_argument(
        "-i",
        "--ignore-path",
        dest="ignore_paths",
        action="append",
        default=[],
        help="Ignore this exact path when searching for repos (repeatable).",
    )
    find_parser.add_argument(
        "--local-limit",
        type=_positive_int,
        default=None,
        help="Maximum concurrent local inspections (unbounded by default).",
    )
    find_parser.add_argument(
        "--remote-limit",
        type=_positive_int,
        default=None,
        help="Maximum concurrent remote inspections (unbounded by default).",
    )
    find_parser.add_argument(
        "search_paths",
        nargs="*",
        help="Local paths to explore for potential git repos.",
    )

    views_parser = subparsers.add_parser(
        "views",
        help="Print stored views as JSON lines.",
    )
    _add_logging_options(views_parser, subcommand=True)
    _add_db_option(views_parser)
    views_parser.add_argument(
        "--host",
        default=None,
        help="Only print views recorded by this host.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for gitfind commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(verbose=bool(args.verbose), level=args.log_level, log_file=args.log_file)
    except ValueError as exc:
        parser.exit(2, f"{exc}\n")
    logger = get_logger("cli")

    if args.command == "find":
        _run_find(parser, args)
    elif args.command == "views":
        _run_views(parser, args)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")
    logger.debug("Finished %s", args.command)


def _run_find(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        config = load_config(args.config).merged(
            search_paths=args.search_paths,
            ignore_paths=args.ignore_paths,
            follow=args.follow,
            database=args.database,
            local_limit=args.local_limit,
            remote_limit=args.remote_limit,
        )
        roots = config.resolved_search_paths()
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    if not roots:
        parser.exit(1, "No search paths given on the command line or in the configuration.\n")

    try:
        store = ViewStore.connect(config.resolved_database())
    except StoreError as exc:
        parser.exit(1, f"{exc}\n")

    host = current_host()
    candidates = iter_candidates(
        roots,
        config.target_name,
        follow=config.follow,
        ignore=config.resolved_ignore_paths(),
    )
    pipeline = FindPipeline(
        GitInspector(),
        store,
        host,
        local_limit=config.concurrency.locals,
        remote_limit=config.concurrency.remotes,
    )
    with store:
        summary = asyncio.run(pipeline.run(candidates))
    print(
        f"locals={summary.locals} remotes_ok={summary.remotes_ok} "
        f"remotes_err={summary.remotes_err} stored={summary.stored} "
        f"store_failures={summary.store_failures}"
    )


def _run_views(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    database = (Path(args.database) if args.database else DEFAULT_DATABASE).expanduser()
    if not database.is_file():
        parser.exit(1, f"No views database at {database}; run `gitfind find` first.\n")
    try:
        with ViewStore.connect(database) as store:
            for view in store.iter_views(host=args.host):
                record = {
                    "host": view.host,
                    "location": location_to_dict(view.location),
                    "facts": facts_to_dict(view.facts),
                }
                print(json.dumps(record, sort_keys=True))
    except StoreError as exc:
        parser.exit(1, f"{exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
