"""Forward-only cache of continuation cursors for one browsing session."""

from typing import Dict, Iterator, Optional, Tuple
import structlog

logger = structlog.get_logger(__name__)


class PaginationError(Exception):
    """Base exception for pagination errors."""
    pass


class UnresolvablePageError(PaginationError):
    """The cursor needed to fetch a page was never recorded in this session."""

    def __init__(self, page: int, message: Optional[str] = None):
        super().__init__(message or f"Page {page} is not reachable: page {page - 1} was never fetched in this session")
        self.page = page


class PageTokenCache:
    """
    Sparse, append-only map from page number to the cursor that fetches its successor.

    An entry for page P exists only once page P has been fetched. Page 1 needs
    no cursor. Jumping to a page whose predecessor was never visited going
    forward is unsupported and raises UnresolvablePageError.
    """

    def __init__(self):
        self._tokens: Dict[int, Optional[str]] = {}

    def __contains__(self, page: int) -> bool:
        return page in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Tuple[int, Optional[str]]]:
        return iter(sorted(self._tokens.items()))

    def record(self, page: int, next_page_token: Optional[str]):
        """
        Record the cursor returned when page was fetched.

        Existing entries are never replaced.
        """
        if page < 1:
            raise ValueError(f"Page numbers start at 1, got {page}")

        if page in self._tokens:
            if self._tokens[page] != next_page_token:
                logger.warning("page_token_changed", page=page)
            return

        self._tokens[page] = next_page_token

    def get(self, page: int) -> Optional[str]:
        """Cursor recorded for page (addresses page + 1), or None."""
        return self._tokens.get(page)

    def cursor_for(self, page: int) -> Optional[str]:
        """
        Cursor required to fetch page.

        Args:
            page: Page to fetch

        Returns:
            None for page 1, otherwise the cursor recorded for page - 1

        Raises:
            UnresolvablePageError: If page - 1 was never fetched or had no successor
        """
        if page < 1:
            raise ValueError(f"Page numbers start at 1, got {page}")
        if page == 1:
            return None

        if page - 1 not in self._tokens:
            raise UnresolvablePageError(page)

        token = self._tokens[page - 1]
        if token is None:
            raise UnresolvablePageError(page, f"Page {page - 1} is the last page")
        return token

    def reset(self):
        """Discard the whole cursor chain."""
        self._tokens.clear()

    @property
    def highest_page(self) -> int:
        """Highest page recorded so far, or 0."""
        return max(self._tokens, default=0)
