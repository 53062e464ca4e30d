"""Domain values shared by the fetchers, the normalizer and the pagination engine."""

from dataclasses import dataclass, field
from typing import List, Optional


MIN_FAVORABLE_RATING = 4
MAX_RATING = 5

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"
ANONYMOUS_REVIEWER = "Anonymous"


@dataclass(frozen=True)
class Review:
    """A favorable reader review in canonical shape."""
    id: str
    rating: int
    reviewer: str = ANONYMOUS_REVIEWER
    reviewer_url: str = ""
    date: str = ""
    content: str = ""

    def __post_init__(self):
        if not MIN_FAVORABLE_RATING <= self.rating <= MAX_RATING:
            raise ValueError(
                f"Review {self.id} has rating {self.rating}, outside {MIN_FAVORABLE_RATING}..{MAX_RATING}"
            )


@dataclass(frozen=True)
class BookInfo:
    """Edition metadata captured once per browsing session."""
    title: str = UNKNOWN_TITLE
    author: str = UNKNOWN_AUTHOR
    cover_url: str = ""


@dataclass
class BootstrapResult:
    """Everything scraped from a book detail page."""
    work_id: str
    book: BookInfo
    reviews: List[Review]
    next_page_token: Optional[str]
    total_count: int
    api_key: str


@dataclass
class ReviewBatch:
    """One page of reviews returned by the review query service."""
    reviews: List[Review]
    next_page_token: Optional[str]
    total_count: int


@dataclass
class PaginationState:
    """Pagination info echoed back so a stateless server can resume a session."""
    current_page: int
    has_next: bool
    has_prev: bool
    next_page_token: Optional[str] = None
    work_id: Optional[str] = None
    api_key: Optional[str] = None


@dataclass
class PageResult:
    """A served page of favorable reviews."""
    book: Optional[BookInfo]
    reviews: List[Review]
    total_count: int
    pagination: PaginationState
    total_filtered: int = field(init=False)

    def __post_init__(self):
        self.total_filtered = len(self.reviews)
