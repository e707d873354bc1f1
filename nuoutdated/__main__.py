"""CLI entry point.

Usage:
    nuoutdated [options] [PATH]
    python -m nuoutdated [options] [PATH]
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from nuoutdated.__version__ import __version__
from nuoutdated.analysis import analyze_project, collect_reports
from nuoutdated.app import OutdatedApp
from nuoutdated.config import DEFAULT_CONCURRENCY, DEFAULT_LOG_FILE, DEFAULT_TIMEOUT, Options, configure_logging
from nuoutdated.core.errors import CommandValidationError, GraphUnavailable
from nuoutdated.core.model import PrereleasePolicy, VersionLock
from nuoutdated.render import print_report


def _enum_choice(enum_type):
    def parse(value: str):
        for member in enum_type:
            if member.value.lower() == value.lower():
                return member
        choices = ", ".join(m.value for m in enum_type)
        raise argparse.ArgumentTypeError(f"invalid value {value!r} (choose from {choices})")
    return parse


def parse_args(argv: Optional[List[str]] = None) -> Options:
    parser = argparse.ArgumentParser(
        prog="nuoutdated",
        description="List outdated NuGet packages of a .NET project",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Path to a project file or to a directory containing one (default: current directory)",
    )
    parser.add_argument(
        "--include-auto-references",
        action="store_true",
        help="Include auto-referenced packages",
    )
    parser.add_argument(
        "-pr", "--pre-release",
        type=_enum_choice(PrereleasePolicy),
        default=PrereleasePolicy.AUTO,
        help="Whether to look for pre-release versions: Auto (default), Always or Never",
    )
    parser.add_argument(
        "-vl", "--version-lock",
        type=_enum_choice(VersionLock),
        default=VersionLock.NONE,
        help="Lock packages to their current Major or Minor version: None (default), Major or Minor",
    )
    parser.add_argument(
        "-t", "--transitive",
        action="store_true",
        help="Detect transitive dependencies",
    )
    parser.add_argument(
        "-td", "--transitive-depth",
        type=int,
        default=1,
        help="How many levels deep transitive dependencies are analyzed (default: 1)",
    )
    parser.add_argument(
        "-o", "--show-only-outdated",
        action="store_true",
        help="Only show outdated packages",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Maximum concurrent package source lookups (default: {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Timeout in seconds for msbuild and restore (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Print the report to the console instead of opening the interactive view",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Where to write the log (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    return Options(
        path=args.path,
        include_transitive=args.transitive,
        transitive_depth=args.transitive_depth,
        include_auto_references=args.include_auto_references,
        prerelease=args.pre_release,
        version_lock=args.version_lock,
        show_only_outdated=args.show_only_outdated,
        concurrency=args.concurrency,
        timeout=args.timeout,
        use_tui=not args.no_tui,
        log_file=args.log_file,
        debug=args.debug,
    )


def run_console(options: Options) -> int:
    console = Console()
    try:
        with console.status("Analyzing project and restoring packages..."):
            projects = analyze_project(options)
        with console.status("Resolving latest versions..."):
            reports = asyncio.run(collect_reports(projects, options))
    except (CommandValidationError, GraphUnavailable) as e:
        logging.error(str(e))
        console.print(f"[bold red]{escape(str(e))}[/]")
        return 1

    print_report(console, reports)
    return 0


def run_tui(options: Options) -> int:
    app = OutdatedApp(options)
    app.run()
    return 1 if app.fatal_error else 0


def main(argv: Optional[List[str]] = None) -> int:
    """ Entrypoint when is installed via pip """
    try:
        options = parse_args(argv).validate()
    except CommandValidationError as e:
        Console(stderr=True).print(f"[bold red]{escape(str(e))}[/]")
        return 1

    configure_logging(options)
    logging.info(f"nuoutdated {__version__} started with {options}")

    if options.use_tui:
        return run_tui(options)
    return run_console(options)


# Development mode
if __name__ == "__main__":
    sys.exit(main())
