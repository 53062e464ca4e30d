"""Caller-side browsing session over the pagination coordinator."""

from typing import Optional
import structlog

from app.models import BookInfo, PageResult
from app.pagination.cache import PageTokenCache, PaginationError
from app.pagination.coordinator import PaginationCoordinator, plan_request, pagination_coordinator

logger = structlog.get_logger(__name__)


class ReviewBrowser:
    """
    Holds the state a client keeps between page requests.

    The browser owns the PageTokenCache, the book metadata from page 1 and
    the work id / API key echoed by the first response. A failed request
    leaves all of it untouched. Requests must not overlap.
    """

    def __init__(self, coordinator: Optional[PaginationCoordinator] = None):
        self.coordinator = coordinator or pagination_coordinator
        self.cache = PageTokenCache()
        self.url: Optional[str] = None
        self.book: Optional[BookInfo] = None
        self.work_id: Optional[str] = None
        self.api_key: Optional[str] = None
        self.current: Optional[PageResult] = None

    @property
    def current_page(self) -> int:
        return self.current.pagination.current_page if self.current else 0

    async def open(self, url: str) -> PageResult:
        """Start a new session at page 1 of a book."""
        result = await self.coordinator.fetch_page(plan_request(url, page=1), self.cache)
        self.url = url
        self._accept(result)
        return result

    async def go_to(self, page: int) -> PageResult:
        """
        Navigate to a page.

        Page 1 always bootstraps again and discards the cursor chain. Any
        other page needs the cursor recorded when page - 1 was fetched.

        Raises:
            UnresolvablePageError: If page - 1 was never fetched in this session
        """
        if self.url is None or self.current is None:
            raise PaginationError("No book opened")

        if page == 1:
            return await self.open(self.url)

        page_token = self.cache.cursor_for(page)
        request = plan_request(
            self.url,
            page=page,
            work_id=self.work_id,
            page_token=page_token,
            api_key=self.api_key,
        )
        result = await self.coordinator.fetch_page(request, self.cache)
        self._accept(result)
        return result

    async def next_page(self) -> PageResult:
        if self.current is None:
            raise PaginationError("No book opened")
        if not self.current.pagination.has_next:
            raise PaginationError(f"Page {self.current_page} is the last page")
        return await self.go_to(self.current_page + 1)

    async def previous_page(self) -> PageResult:
        if self.current is None:
            raise PaginationError("No book opened")
        if not self.current.pagination.has_prev:
            raise PaginationError("Already on the first page")
        return await self.go_to(self.current_page - 1)

    def _accept(self, result: PageResult):
        pagination = result.pagination
        if result.book is not None:
            self.book = result.book
        if pagination.work_id:
            self.work_id = pagination.work_id
        if pagination.api_key:
            self.api_key = pagination.api_key
        self.current = result

        logger.debug("browser_page_accepted", page=pagination.current_page, cached_pages=len(self.cache))
