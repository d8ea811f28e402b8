"""Command-line entry point: run a full crawl now."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from helsinki_deals.ingest.base import CrawlResult, SiteStatus
from helsinki_deals.ingest.catalog import CatalogError
from helsinki_deals.ingest.orchestrator import run_crawl
from helsinki_deals.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helsinki-deals",
        description="Crawl the store catalog for current sales and write the results as JSON",
    )
    parser.add_argument(
        "--catalog",
        type=str,
        default=None,
        help="Path to the stores JSON catalog (default: bundled catalog)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the crawl result to this file instead of stdout",
    )
    parser.add_argument(
        "--no-render",
        action="store_true",
        help="Never start the headless browser; fetch every page statically",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override the configured log level (DEBUG, INFO, ...)",
    )
    return parser


def summarize(result: CrawlResult) -> List[str]:
    """One line per site plus a total."""
    lines = []
    for outcome in result.outcomes:
        if outcome.status is SiteStatus.FAILED:
            lines.append(f"{outcome.site.id}: failed ({outcome.reason})")
        else:
            via = f" via {outcome.strategy}" if outcome.strategy else ""
            lines.append(f"{outcome.site.id}: {len(outcome.deals)} deal(s){via}")
    lines.append(f"Total: {len(result.deals)} deal(s) from {len(result.outcomes)} site(s)")
    return lines


def write_result(result: CrawlResult, output: Optional[str]):
    payload = result.to_json()
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload + "\n", encoding="utf-8")
        logger.info(f"Wrote {len(result.deals)} deal(s) to {path}")
    else:
        sys.stdout.write(payload + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    rendering = False if args.no_render else None
    try:
        result = asyncio.run(run_crawl(catalog_path=args.catalog, rendering=rendering))
    except CatalogError as e:
        logger.error(str(e))
        return 1

    for line in summarize(result):
        print(line, file=sys.stderr)

    write_result(result, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
