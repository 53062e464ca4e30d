"""
Only Good Reads command line

Prints the 4 and 5 star reviews of a Goodreads book as JSON, page by page.

Usage:
    python -m app.cli "https://www.goodreads.com/book/show/4671.The_Great_Gatsby"
    python -m app.cli "https://www.goodreads.com/book/show/4671.The_Great_Gatsby" --pages 3
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional
import structlog

from app.api.schemas import ReviewsPageResponse
from app.config import settings
from app.graphql.client import ReviewQueryError
from app.pagination.browser import ReviewBrowser
from app.pagination.cache import PaginationError
from app.parsers.hydration import BootstrapError

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch favorable Goodreads reviews for a book")
    parser.add_argument("url", help="Goodreads book URL")
    parser.add_argument("--pages", type=int, default=1, help="Number of pages to fetch (default: 1)")
    parser.add_argument("--output", "-o", help="Write JSON to this file instead of stdout")
    return parser


async def collect_pages(url: str, pages: int, browser: Optional[ReviewBrowser] = None) -> List[dict]:
    """
    Fetch up to `pages` pages, stopping early on the last page.

    Args:
        url: Goodreads book URL
        pages: Maximum number of pages
        browser: Browsing session to use

    Returns:
        Serialized pages in order
    """
    browser = browser or ReviewBrowser()
    results = [await browser.open(url)]

    while len(results) < pages and browser.current.pagination.has_next:
        results.append(await browser.next_page())

    return [ReviewsPageResponse.from_result(result).model_dump(by_alias=True) for result in results]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if settings.target_domain not in args.url:
        print("URL must be a Goodreads URL", file=sys.stderr)
        return 2
    if args.pages < 1:
        print("--pages must be at least 1", file=sys.stderr)
        return 2

    try:
        pages = asyncio.run(collect_pages(args.url, args.pages))
    except (BootstrapError, ReviewQueryError, PaginationError) as e:
        logger.error("cli_fetch_failed", url=args.url, reason=type(e).__name__, error=str(e))
        print(f"Failed to fetch reviews: {e}", file=sys.stderr)
        return 1

    output = json.dumps(pages, indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        print(f"Data saved to {args.output}")
    else:
        print(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
