"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from app.models import BookInfo, PageResult, Review


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""
    model_config = ConfigDict(populate_by_name=True)


class ReviewResponse(CamelModel):
    """A favorable review."""
    id: str
    rating: int = Field(..., ge=4, le=5)
    reviewer: str
    reviewer_url: str = Field(default="", alias="reviewerUrl")
    date: str = ""
    content: str = ""

    @classmethod
    def from_review(cls, review: Review) -> "ReviewResponse":
        return cls(
            id=review.id,
            rating=review.rating,
            reviewer=review.reviewer,
            reviewer_url=review.reviewer_url,
            date=review.date,
            content=review.content,
        )


class BookResponse(CamelModel):
    """Book metadata, returned with page 1 only."""
    title: str
    author: str
    cover_url: str = Field(default="", alias="coverUrl")

    @classmethod
    def from_book(cls, book: BookInfo) -> "BookResponse":
        return cls(title=book.title, author=book.author, cover_url=book.cover_url)


class PaginationResponse(CamelModel):
    """Pagination state echoed back to the caller."""
    current_page: int = Field(..., alias="currentPage")
    has_next: bool = Field(..., alias="hasNext")
    has_prev: bool = Field(..., alias="hasPrev")
    next_page_token: Optional[str] = Field(default=None, alias="nextPageToken")
    work_id: Optional[str] = Field(default=None, alias="workId")
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class ReviewsPageResponse(CamelModel):
    """One page of favorable reviews."""
    book: Optional[BookResponse]
    reviews: List[ReviewResponse]
    total_filtered: int = Field(..., alias="totalFiltered")
    total_count: int = Field(..., alias="totalCount")
    pagination: PaginationResponse

    @classmethod
    def from_result(cls, result: PageResult) -> "ReviewsPageResponse":
        pagination = result.pagination
        return cls(
            book=BookResponse.from_book(result.book) if result.book else None,
            reviews=[ReviewResponse.from_review(review) for review in result.reviews],
            total_filtered=result.total_filtered,
            total_count=result.total_count,
            pagination=PaginationResponse(
                current_page=pagination.current_page,
                has_next=pagination.has_next,
                has_prev=pagination.has_prev,
                next_page_token=pagination.next_page_token,
                work_id=pagination.work_id,
                api_key=pagination.api_key,
            ),
        )


class ErrorResponse(BaseModel):
    """Error body."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: datetime
    version: str
