"""Command line entry point for the corpus benchmark."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .candidates import default_registry
from .config import JSON_BACKENDS
from .config import OPERATIONS
from .config import ORDERS
from .config import BenchConfig
from .driver import run_corpus

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED_FIXTURES = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sourcemap-bench",
        description=(
            "Compare memory use and speed of source map mappings codecs "
            "over a directory of fixture source maps"
        ),
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory holding the fixtures, defaults to the current one",
    )
    parser.add_argument(
        "--extension",
        help="Suffix a file name needs to count as a fixture, defaults to .map",
    )
    parser.add_argument(
        "--order",
        choices=ORDERS,
        help="Fixture order: raw directory listing (default) or sorted",
    )
    parser.add_argument(
        "--json-backend",
        choices=JSON_BACKENDS,
        help="JSON parser used to read fixtures, defaults to orjson",
    )
    parser.add_argument(
        "-c",
        "--candidate",
        action="append",
        dest="candidates",
        help="Only benchmark this candidate; may be given more than once",
    )
    parser.add_argument(
        "--operation",
        action="append",
        dest="operations",
        choices=OPERATIONS,
        help="Only benchmark this operation; may be given more than once",
    )
    parser.add_argument(
        "--no-gc",
        action="store_true",
        help="Do not force a garbage collection before memory snapshots",
    )
    parser.add_argument(
        "--min-time",
        type=float,
        help="Seconds to sample each speed trial, defaults to 0.5",
    )
    parser.add_argument(
        "--min-samples",
        type=int,
        help="Minimum timed batches per speed trial, defaults to 5",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with a non-zero status if any fixture failed",
    )
    parser.add_argument(
        "--list-candidates",
        action="store_true",
        help="Print the available candidates, and exit immediately",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.list_candidates:
        for label in default_registry().labels:
            print(label)
        return EXIT_OK

    try:
        config = BenchConfig.from_env(
            extension=args.extension,
            order=args.order,
            json_backend=args.json_backend,
            collect_garbage=False if args.no_gc else None,
            min_time=args.min_time,
            min_samples=args.min_samples,
            candidates=tuple(args.candidates) if args.candidates else None,
            operations=tuple(args.operations) if args.operations else None,
            strict=args.strict or None,
        )
    except (TypeError, ValueError) as e:
        parser.error(str(e))

    directory = Path(args.directory)
    if not directory.is_dir():
        logger.error("not a directory: %s", directory)
        return EXIT_USAGE

    try:
        result = asyncio.run(run_corpus(directory, config))
    except KeyError as e:
        logger.error("%s", e.args[0])
        return EXIT_USAGE

    if result.failed:
        logger.warning(
            "%d fixture(s) failed: %s",
            len(result.failed),
            ", ".join(result.failed),
        )
        if config.strict:
            return EXIT_FAILED_FIXTURES
    return EXIT_OK
