"""CLI argument parsing and command implementations."""

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import yaml
from dotenv import find_dotenv, load_dotenv
from tabulate import tabulate

from . import __version__
from .api import REGISTRIES, make_upstream
from .config import DEFAULT_AVERAGE_DAYS, Settings, load_settings
from .db import SqliteStore
from .export import EXPORT_FORMATS, export_statistics
from .logging import setup_logging
from .reconcile import UNAVAILABLE
from .service import get_package_statistics, query_average_downloads
from .utils import make_sparkline, parse_day, validate_package_name

logger = logging.getLogger("pkghist")


def load_packages_from_file(file_path: str) -> list[str]:
    """Load package names from a file (YAML, JSON, or plain text).

    Supports:
    - YAML (.yml, .yaml): expects 'packages' key with list of packages
    - JSON (.json): expects list of strings or object with 'packages' key
    - Plain text: one package name per line (comments with # supported)
    """
    path = Path(file_path)
    suffix = path.suffix.lower()

    with open(file_path) as f:
        content = f.read()

    if suffix in (".yml", ".yaml"):
        data = yaml.safe_load(content)
        if isinstance(data, dict):
            return [str(p) for p in data.get("packages") or []]
        if isinstance(data, list):
            return [str(p) for p in data]
        return []

    if suffix == ".json":
        data = json.loads(content)
        if isinstance(data, list):
            return [str(p) for p in data]
        if isinstance(data, dict):
            return [str(p) for p in data.get("packages") or []]
        return []

    packages = []
    for line in content.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            packages.append(line)
    return packages


def _settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line overrides applied."""
    env = dict(os.environ)
    if args.database:
        env["PKGHIST_DATABASE"] = args.database
    if args.registry:
        env["PKGHIST_REGISTRY"] = args.registry
    return load_settings(env)


def _store(settings: Settings) -> SqliteStore:
    store = SqliteStore(settings.database)
    store.initialize()
    return store


def _display_name(name: str) -> str:
    return name or "(all packages)"


def cmd_serve(args: argparse.Namespace) -> None:
    """Serve command: run the HTTP server."""
    from .server import create_app

    setup_logging(verbose=args.verbose, quiet=args.quiet, server=True)
    settings = _settings(args)
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port

    store = _store(settings)
    upstream = make_upstream(settings.registry, timeout=settings.timeout)
    app = create_app(store, upstream, settings)

    logger.info(
        "Serving %s download history from %s on http://%s:%d",
        settings.registry,
        settings.database,
        settings.host,
        settings.port,
    )
    app.run(host=settings.host, port=settings.port, threaded=True)


def cmd_fetch(args: argparse.Namespace) -> None:
    """Fetch command: run one fetch cycle for each package."""
    packages = list(args.names)
    if args.file:
        try:
            packages.extend(load_packages_from_file(args.file))
        except FileNotFoundError:
            print(f"File not found: {args.file}")
            sys.exit(1)

    if not packages:
        print("No packages given.")
        print("Pass package names or a package file with '-f'.")
        return

    settings = _settings(args)
    store = _store(settings)
    upstream = make_upstream(settings.registry, timeout=settings.timeout)

    failed = 0
    total = len(packages)
    for i, name in enumerate(packages, 1):
        is_valid, message = validate_package_name(name)
        if not is_valid:
            logger.error("[%d/%d] Skipping %r: %s", i, total, name, message)
            failed += 1
            continue

        print(f"[{i}/{total}] Fetching downloads for {_display_name(name)}...")
        try:
            statistics = get_package_statistics(
                store, upstream, name, settings.policy_for(name)
            )
        except Exception as e:
            logger.error("  Error fetching %s: %s", _display_name(name), e)
            failed += 1
            continue

        if statistics:
            print(
                f"  {len(statistics):,} days stored "
                f"({statistics[0]['day']} to {statistics[-1]['day']})"
            )
        else:
            print("  No days stored yet.")

    print("Done.")
    if failed:
        sys.exit(1)


def cmd_show(args: argparse.Namespace) -> None:
    """Show command: display the latest stored days for a package."""
    settings = _settings(args)
    store = _store(settings)
    statistics = store.get_recent_statistics(args.name, limit=args.limit)

    if not statistics:
        print(f"No data found for package '{_display_name(args.name)}'.")
        return

    print(f"Daily downloads for {_display_name(args.name)}\n")

    rows = []
    for s in statistics:
        downloads = "n/a" if s["downloads"] == UNAVAILABLE else f"{s['downloads']:,}"
        rows.append([s["day"].isoformat(), downloads])
    print(tabulate(rows, headers=["Day", "Downloads"], tablefmt="simple", colalign=("left", "right")))

    values = [max(s["downloads"], 0) for s in statistics]
    print(f"\nTrend: [{make_sparkline(values)}]")


def cmd_list(args: argparse.Namespace) -> None:
    """List command: show stored packages and their coverage."""
    settings = _settings(args)
    store = _store(settings)
    summaries = store.get_package_summaries()

    if not summaries:
        print("No packages stored yet.")
        print("Fetch some with 'pkghist fetch <name>'.")
        return

    print(f"Storing {len(summaries)} packages:\n")

    rows = [
        [
            _display_name(s["name"]),
            f"{s['days']:,}",
            s["first_day"] or "",
            s["last_day"] or "",
        ]
        for s in summaries
    ]
    headers = ["Package", "Days", "First", "Last"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))


def cmd_averages(args: argparse.Namespace) -> None:
    """Averages command: average daily downloads per package."""
    end = args.end or datetime.now(timezone.utc).date()
    start = args.start or end - timedelta(days=DEFAULT_AVERAGE_DAYS)

    settings = _settings(args)
    store = _store(settings)
    try:
        averages = query_average_downloads(store, start, end)
    except ValueError as e:
        print(e)
        sys.exit(1)

    if not averages:
        print(f"No downloads stored between {start} and {end}.")
        return

    print(f"Average daily downloads from {start} to {end} (exclusive)\n")
    rows = [[_display_name(name), f"{average:,}"] for name, average in averages.items()]
    print(tabulate(rows, headers=["Package", "Average"], tablefmt="simple", colalign=("left", "right")))


def cmd_export(args: argparse.Namespace) -> None:
    """Export command: export stored history for a package."""
    settings = _settings(args)
    store = _store(settings)

    package = store.find_package(args.name)
    statistics = store.get_statistics(package["id"]) if package else []
    if not statistics:
        print(f"No data found for package '{_display_name(args.name)}'.")
        return

    output = export_statistics(args.name, statistics, args.format)

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        print(f"Exported to {args.output}")
    else:
        print(output)


def _date_arg(value: str):
    try:
        return parse_day(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value}")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pkghist",
        description="Cache and serve daily package download history.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-d",
        "--database",
        help="SQLite database file (default: $PKGHIST_DATABASE or ~/.pkghist/pkghist.db)",
    )
    parser.add_argument(
        "-r",
        "--registry",
        choices=REGISTRIES,
        help="Upstream registry (default: $PKGHIST_REGISTRY or npm)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print extra output",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print warnings and errors",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP server",
    )
    serve_parser.add_argument(
        "-H",
        "--host",
        help="Hostname to listen on (default: $HOSTNAME or 127.0.0.1)",
    )
    serve_parser.add_argument(
        "-p",
        "--port",
        type=int,
        help="Port to listen on (default: $PORT or 8080)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # fetch command
    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Fetch the next range of downloads for packages",
    )
    fetch_parser.add_argument(
        "names",
        nargs="*",
        help="Package names to fetch (use '' for all packages)",
    )
    fetch_parser.add_argument(
        "-f",
        "--file",
        help="Read package names from a file - supports .yml, .json, or plain text",
    )
    fetch_parser.set_defaults(func=cmd_fetch)

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show stored daily downloads for a package",
    )
    show_parser.add_argument(
        "name",
        help="Package name to show (use '' for all packages)",
    )
    show_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=30,
        help="Number of days to show (default: 30)",
    )
    show_parser.set_defaults(func=cmd_show)

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List stored packages",
    )
    list_parser.set_defaults(func=cmd_list)

    # averages command
    averages_parser = subparsers.add_parser(
        "averages",
        help="Show average daily downloads per package",
    )
    averages_parser.add_argument(
        "--start",
        type=_date_arg,
        help=f"First day, inclusive (default: {DEFAULT_AVERAGE_DAYS} days before end)",
    )
    averages_parser.add_argument(
        "--end",
        type=_date_arg,
        help="Last day, exclusive (default: today)",
    )
    averages_parser.set_defaults(func=cmd_averages)

    # export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export stored history (csv, json, markdown)",
    )
    export_parser.add_argument(
        "name",
        help="Package name to export",
    )
    export_parser.add_argument(
        "-f",
        "--format",
        choices=EXPORT_FORMATS,
        default="csv",
        help="Export format (default: csv)",
    )
    export_parser.add_argument(
        "-o",
        "--output",
        help="Output file (default: stdout)",
    )
    export_parser.set_defaults(func=cmd_export)

    return parser


def main() -> None:
    """Main entry point for the CLI."""
    load_dotenv(find_dotenv(usecwd=True))
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    if args.command is None:
        parser.print_help()
        return

    args.func(args)
