"""Command line entry point for jumpjump.

This module provides the main entry point with:
- CLI argument parsing for the add, get and show commands
- Pydantic Settings for environment variable support
- One store session per invocation, closed on every exit path
- Logging to stderr (stdout carries the locations)

Usage:
    python -m jumpjump [options] COMMAND

    Commands:
        add LOCATION            Record a visit to LOCATION
        get [PATTERN ...]       Print all locations, or the best match
        show [--json]           Print every location with rank and last access

    Options:
        -f, --file PATH         Store file (default: ~/.jumpjump)
        --[no-]raw-patterns     Treat patterns as regular expressions
        --log-level LEVEL       Logging level (default: WARNING)
"""

import argparse
import json
import logging
import sys
from typing import Callable, Optional

from pydantic import ValidationError

from jumpjump.config import JumpSettings, normalize_db_path
from jumpjump.matching import PatternError, PatternMatcher
from jumpjump.paths import canonicalize_path
from jumpjump.resolver import resolve
from jumpjump.storage.errors import LocationStoreError
from jumpjump.storage.sqlite import LocationStore

logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging to stderr (never stdout, which carries results).

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.debug(f"Logging initialized at {log_level.upper()} level")


def parse_arguments(
    argv: Optional[list[str]] = None,
    settings: Optional[JumpSettings] = None,
) -> argparse.Namespace:
    """Parse CLI arguments with configuration defaults.

    Returns:
        Parsed arguments namespace

    Configuration precedence:
        1. CLI arguments (highest priority)
        2. Environment variables (JUMPJUMP_ prefix)
        3. Defaults (lowest priority)
    """
    settings = settings or JumpSettings()

    parser = argparse.ArgumentParser(
        prog="jumpjump",
        description="Jump around, jump around, jump up, jump up, and get down.",
    )
    parser.add_argument(
        "-f",
        "--file",
        type=str,
        default=str(settings.db_path) if settings.db_path else None,
        help="Use given db file instead of default (~/.jumpjump)",
    )
    parser.add_argument(
        "--raw-patterns",
        action=argparse.BooleanOptionalAction,
        default=settings.raw_patterns,
        help="Treat patterns as regular expression fragments",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    add_parser = subparsers.add_parser("add", help="add location to db")
    add_parser.add_argument("location", help="Directory to record")
    add_parser.set_defaults(handler=run_add)

    get_parser = subparsers.add_parser("get", help="get recent location from db")
    get_parser.add_argument("pattern", nargs="*", help="Substrings to match, in order")
    get_parser.set_defaults(handler=run_get)

    show_parser = subparsers.add_parser("show", help="show all locations with rank")
    show_parser.add_argument(
        "--json",
        action="store_true",
        help="Print records as a JSON array",
    )
    show_parser.set_defaults(handler=run_show)

    return parser.parse_args(argv)


def open_store(args: argparse.Namespace, settings: JumpSettings) -> LocationStore:
    """Open the store selected by the CLI arguments and settings.

    Raises:
        LocationStoreError: If the store cannot be located, opened or migrated
    """
    db_path = normalize_db_path(args.file) if args.file else settings.get_db_path()
    matcher = PatternMatcher(
        raw_patterns=args.raw_patterns,
        cache_size=settings.pattern_cache_size,
    )
    logger.debug(f"Using store {db_path}")
    return LocationStore(
        db_path=db_path,
        matcher=matcher,
        busy_timeout=settings.busy_timeout,
    )


# =============================================================================
# Commands
# =============================================================================


def run_add(store: LocationStore, args: argparse.Namespace) -> None:
    """Canonicalize the location argument and record a visit."""
    location = canonicalize_path(args.location)
    store.add_location(location)
    logger.info(f"Recorded visit to {location}")


def run_get(store: LocationStore, args: argparse.Namespace) -> None:
    """Print every location, or the best match for the patterns."""
    for location in resolve(store, args.pattern):
        print(location)


def run_show(store: LocationStore, args: argparse.Namespace) -> None:
    """Print every location with its rank and last access time."""
    entries = store.get_all_locations_verbose()

    if args.json:
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return

    for entry in entries:
        print(f"{entry.rank}\t{entry.last_access.isoformat(sep=' ')}\t{entry.location}")


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the jumpjump command.

    Workflow:
    1. Load settings and parse CLI arguments
    2. Setup logging
    3. Open (and migrate) the store
    4. Run the requested command
    5. Close the store

    Any store, input or pattern error is logged and exits with status 1.
    A query with no match prints nothing and exits normally.
    """
    try:
        settings = JumpSettings()
    except ValidationError as e:
        setup_logging("WARNING")
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    args = parse_arguments(argv, settings)
    setup_logging(args.log_level)

    handler: Callable[[LocationStore, argparse.Namespace], None] = args.handler

    try:
        with open_store(args, settings) as store:
            handler(store, args)

    except LocationStoreError as e:
        logger.error(f"Store error: {e}")
        sys.exit(1)
    except PatternError as e:
        logger.error(f"Invalid pattern: {e}")
        sys.exit(1)
    except (OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
