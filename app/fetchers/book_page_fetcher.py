"""Book page fetcher that bootstraps a review browsing session."""

import httpx
from typing import Dict, Optional
import structlog

from app.config import settings
from app.auth.credentials import resolve_api_key
from app.models import BootstrapResult
from app.monitoring.metrics import upstream_requests_total, bootstrap_failures_total
from app.parsers.hydration import (
    BootstrapError,
    HydrationStateParser,
    apollo_state_parser,
)

logger = structlog.get_logger(__name__)


class BookPageFetchError(BootstrapError):
    """The book page could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionBootstrapper:
    """Fetches a Goodreads book page and extracts everything needed to page its reviews."""

    def __init__(
        self,
        parser: Optional[HydrationStateParser] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize bootstrapper.

        Args:
            parser: Hydration state adapter (defaults to the Apollo state parser)
            transport: Optional httpx transport, mainly for tests
        """
        self.parser = parser or apollo_state_parser
        self.transport = transport

    @staticmethod
    def _get_headers() -> Dict[str, str]:
        """Browser-like request headers for the book page."""
        return {
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": settings.accept_language,
        }

    async def _fetch_html(self, url: str) -> str:
        """
        Download the book page.

        Raises:
            BookPageFetchError: On transport errors or non-success status
        """
        logger.info("fetching_book_page", url=url)

        try:
            async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, headers=self._get_headers())
        except httpx.HTTPError as e:
            upstream_requests_total.labels(upstream="book_page", status_code="error").inc()
            logger.error("book_page_transport_error", url=url, error=str(e))
            raise BookPageFetchError(f"Transport error: {e}")

        upstream_requests_total.labels(upstream="book_page", status_code=str(response.status_code)).inc()

        if not response.is_success:
            logger.error("book_page_request_failed", url=url, status=response.status_code)
            raise BookPageFetchError(f"Request failed: {response.status_code}", status_code=response.status_code)

        return response.text

    async def bootstrap(self, url: str, supplied_api_key: Optional[str] = None) -> BootstrapResult:
        """
        Bootstrap a session from a book URL.

        Args:
            url: Goodreads book URL
            supplied_api_key: Key the caller already holds, used only when the
                page yields none

        Returns:
            BootstrapResult with work id, book info, first favorable reviews,
            continuation cursor and API key

        Raises:
            BootstrapError: On any fetch or parse failure
        """
        try:
            html = await self._fetch_html(url)
            parsed = self.parser.parse(html)
        except BootstrapError as e:
            bootstrap_failures_total.labels(reason=type(e).__name__).inc()
            logger.error("bootstrap_failed", url=url, reason=type(e).__name__, error=str(e))
            raise

        api_key = resolve_api_key(extracted=parsed.extracted_api_key, supplied=supplied_api_key)

        logger.info(
            "bootstrap_complete",
            url=url,
            work_id=parsed.work_id,
            reviews_count=len(parsed.reviews),
            has_next=bool(parsed.next_page_token),
        )

        return BootstrapResult(
            work_id=parsed.work_id,
            book=parsed.book,
            reviews=parsed.reviews,
            next_page_token=parsed.next_page_token,
            total_count=parsed.total_count,
            api_key=api_key,
        )


# Global bootstrapper instance
session_bootstrapper = SessionBootstrapper()
