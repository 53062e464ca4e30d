"""Routes page requests to the bootstrap or cursor fetch strategy."""

from dataclasses import dataclass
from typing import Optional, Union
import structlog

from app.auth.credentials import resolve_api_key
from app.fetchers.book_page_fetcher import SessionBootstrapper, session_bootstrapper
from app.graphql.client import ReviewQueryClient, review_query_client
from app.models import PageResult, PaginationState
from app.monitoring.metrics import pages_served_total, reviews_served_total, page_fetch_duration_seconds
from app.pagination.cache import PageTokenCache

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BootstrapRequest:
    """Fetch page 1 by scraping the book page."""
    url: str
    api_key: Optional[str] = None

    mode = "bootstrap"
    page = 1


@dataclass(frozen=True)
class CursorFetchRequest:
    """Fetch page > 1 from the review query service."""
    url: str
    page: int
    work_id: str
    page_token: Optional[str] = None
    api_key: Optional[str] = None

    mode = "cursor_fetch"


PageRequest = Union[BootstrapRequest, CursorFetchRequest]


def plan_request(
    url: str,
    page: int = 1,
    work_id: Optional[str] = None,
    page_token: Optional[str] = None,
    api_key: Optional[str] = None,
) -> PageRequest:
    """
    Choose the fetch strategy for a page request.

    Page 1, or any page without a known work id, bootstraps from the book
    page. Everything else continues from the caller's cursor.

    Args:
        url: Book URL
        page: Requested page number
        work_id: Work identifier from an earlier response
        page_token: Cursor returned with the previous page
        api_key: API key from an earlier response

    Returns:
        BootstrapRequest or CursorFetchRequest
    """
    if page < 1:
        raise ValueError(f"Page numbers start at 1, got {page}")

    if page == 1 or not work_id:
        return BootstrapRequest(url=url, api_key=api_key)

    return CursorFetchRequest(
        url=url,
        page=page,
        work_id=work_id,
        page_token=page_token,
        api_key=api_key,
    )


class PaginationCoordinator:
    """Executes planned page requests and shapes the results."""

    def __init__(
        self,
        bootstrapper: Optional[SessionBootstrapper] = None,
        query_client: Optional[ReviewQueryClient] = None,
    ):
        self.bootstrapper = bootstrapper or session_bootstrapper
        self.query_client = query_client or review_query_client

    async def fetch_page(self, request: PageRequest, cache: Optional[PageTokenCache] = None) -> PageResult:
        """
        Fetch one page of favorable reviews.

        Args:
            request: Planned page request
            cache: Caller-held cursor cache to update on success

        Returns:
            PageResult

        Raises:
            BootstrapError: If the book page cannot be bootstrapped
            ReviewQueryError: If the review service fails
        """
        with page_fetch_duration_seconds.labels(mode=request.mode).time():
            if isinstance(request, BootstrapRequest):
                result = await self._bootstrap(request, cache)
            elif isinstance(request, CursorFetchRequest):
                result = await self._cursor_fetch(request, cache)
            else:
                raise TypeError(f"Unknown page request: {request!r}")

        pages_served_total.labels(mode=request.mode).inc()
        reviews_served_total.labels(mode=request.mode).inc(result.total_filtered)
        return result

    async def _bootstrap(self, request: BootstrapRequest, cache: Optional[PageTokenCache]) -> PageResult:
        logger.info("page_requested", mode=request.mode, page=1, url=request.url)

        bootstrap = await self.bootstrapper.bootstrap(request.url, supplied_api_key=request.api_key)

        if cache is not None:
            cache.reset()
            cache.record(1, bootstrap.next_page_token)

        return PageResult(
            book=bootstrap.book,
            reviews=bootstrap.reviews,
            total_count=bootstrap.total_count,
            pagination=PaginationState(
                current_page=1,
                has_next=bootstrap.next_page_token is not None,
                has_prev=False,
                next_page_token=bootstrap.next_page_token,
                work_id=bootstrap.work_id,
                api_key=bootstrap.api_key,
            ),
        )

    async def _cursor_fetch(self, request: CursorFetchRequest, cache: Optional[PageTokenCache]) -> PageResult:
        logger.info(
            "page_requested",
            mode=request.mode,
            page=request.page,
            work_id=request.work_id,
            has_page_token=bool(request.page_token),
        )

        api_key = resolve_api_key(supplied=request.api_key)
        batch = await self.query_client.get_reviews(
            work_id=request.work_id,
            api_key=api_key,
            page_token=request.page_token,
        )

        if cache is not None:
            cache.record(request.page, batch.next_page_token)

        # Book metadata is not re-fetched past page 1
        return PageResult(
            book=None,
            reviews=batch.reviews,
            total_count=batch.total_count,
            pagination=PaginationState(
                current_page=request.page,
                has_next=batch.next_page_token is not None,
                has_prev=request.page > 1,
                next_page_token=batch.next_page_token,
                work_id=request.work_id,
                api_key=api_key,
            ),
        )


# Global coordinator instance
pagination_coordinator = PaginationCoordinator()
