"""repscrape CLI. Invoked as `repscrape` when installed with pip install -e ."""

import argparse
import sys
from pathlib import Path

from repscrape._deps import check_required
from repscrape.config import (
    DEFAULT_DELAY,
    DEFAULT_OUTPUT,
    DEFAULT_PARALLELISM,
    DEFAULT_RECORD_CAP,
    DEFAULT_TIMEOUT,
    DEFAULT_USERS_PER_PAGE,
    ScrapeConfig,
)

# Operator-facing prefix per phase that failed
PHASE_MESSAGES = {
    "init": "Invalid configuration",
    "probing": "Failed to get max pages",
    "crawling": "Failed to get users",
    "exporting": "Error creating CSV file",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repscrape",
        description="Scrape the Stack Overflow users listing (name, location, reputation, top tags) to CSV.",
    )
    parser.add_argument("--out", default=DEFAULT_OUTPUT, metavar="PATH", help=f"Output file (default: {DEFAULT_OUTPUT})")
    parser.add_argument(
        "--parallelism",
        type=int,
        default=DEFAULT_PARALLELISM,
        metavar="N",
        help=f"Max concurrent page fetches (default: {DEFAULT_PARALLELISM})",
    )
    parser.add_argument(
        "--max-users",
        type=int,
        default=DEFAULT_RECORD_CAP,
        metavar="N",
        help=f"Stop after the pages needed for N users (default: {DEFAULT_RECORD_CAP})",
    )
    parser.add_argument(
        "--users-per-page",
        type=int,
        default=DEFAULT_USERS_PER_PAGE,
        metavar="N",
        help=f"Users listed per page, used to cap the page range (default: {DEFAULT_USERS_PER_PAGE})",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        metavar="N",
        help="Skip page-count discovery and crawl pages 1..N (still capped by --max-users).",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_DELAY,
        metavar="SECS",
        help="Delay before each request in seconds (default: none)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        metavar="SECS",
        help=f"Per-request timeout in seconds (default: {DEFAULT_TIMEOUT:.0f})",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bar and print a line per scraped user instead",
    )
    parser.add_argument(
        "--escape-quotes",
        action="store_true",
        help='Double embedded " in text fields (RFC 4180). Default writes them as-is.',
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ScrapeConfig:
    return ScrapeConfig(
        parallelism=args.parallelism,
        record_cap=args.max_users,
        users_per_page=args.users_per_page,
        max_pages=args.max_pages,
        output=Path(args.out),
        delay=args.delay,
        timeout=args.timeout,
        progress=not args.no_progress,
        escape_quotes=args.escape_quotes,
    )


def main(argv: list[str] | None = None) -> None:
    check_required()

    # Imported after the dependency check so a missing package gets install instructions, not a traceback
    from repscrape.errors import ScrapeError
    from repscrape.pipeline import Pipeline

    args = build_parser().parse_args(argv)
    pipeline = None
    try:
        pipeline = Pipeline(config_from_args(args))
        result = pipeline.run()
    except ScrapeError as e:
        phase = pipeline.failed_phase.value if pipeline and pipeline.failed_phase else "init"
        print(f"Error: {PHASE_MESSAGES.get(phase, 'Scrape failed')}: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"  Wrote {result.user_count} users to {result.output}", file=sys.stderr)
    print("\nDone.", file=sys.stderr)


if __name__ == "__main__":
    main()
