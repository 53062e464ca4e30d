"""API routes for the service."""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from app.api.schemas import ReviewsPageResponse, ErrorResponse, HealthResponse
from app.config import settings
from app.graphql.client import ReviewQueryError
from app.pagination.coordinator import plan_request, pagination_coordinator
from app.parsers.hydration import BootstrapError
from app import __version__

logger = structlog.get_logger(__name__)

router = APIRouter()

MISSING_URL_MESSAGE = "Missing 'url' query parameter"
WRONG_DOMAIN_MESSAGE = "URL must be a Goodreads URL"
INVALID_PAGE_MESSAGE = "Invalid 'page' query parameter"
BOOTSTRAP_FAILED_MESSAGE = "Failed to fetch book data"
QUERY_FAILED_MESSAGE = "Failed to fetch reviews"
UNEXPECTED_ERROR_MESSAGE = "Failed to fetch and parse reviews"


class InvalidRequestError(Exception):
    """A query parameter is missing or malformed."""
    pass


def validate_book_url(url: Optional[str]) -> str:
    """
    Validate the book URL parameter.

    Raises:
        InvalidRequestError: If the URL is missing or not on the target domain
    """
    if not url:
        raise InvalidRequestError(MISSING_URL_MESSAGE)
    if settings.target_domain not in url:
        raise InvalidRequestError(WRONG_DOMAIN_MESSAGE)
    return url


def parse_page(page: Optional[str]) -> int:
    """
    Parse the page parameter, defaulting to 1.

    Raises:
        InvalidRequestError: If page is not a positive integer
    """
    if page is None or page == "":
        return 1
    try:
        value = int(page)
    except ValueError:
        raise InvalidRequestError(INVALID_PAGE_MESSAGE)
    if value < 1:
        raise InvalidRequestError(INVALID_PAGE_MESSAGE)
    return value


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


# Health check
@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=__version__,
    )


@router.get(
    "/reviews",
    response_model=ReviewsPageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_reviews(
    url: Optional[str] = Query(None, description="Goodreads book URL"),
    page: Optional[str] = Query(None, description="Page number, starting at 1"),
    page_token: Optional[str] = Query(None, alias="pageToken", description="Cursor returned with the previous page"),
    work_id: Optional[str] = Query(None, alias="workId", description="Work identifier from an earlier response"),
    api_key: Optional[str] = Query(None, alias="apiKey", description="API key from an earlier response"),
):
    """
    Get one page of 4 and 5 star reviews for a book.

    Page 1 scrapes the book page and returns book metadata plus the work id,
    API key and cursor to echo back for page 2. Later pages are fetched from
    the review service with the caller's cursor and return no book metadata.

    Returns:
        Reviews page, or {"error": ...} with status 400 or 500
    """
    try:
        url = validate_book_url(url)
        page_number = parse_page(page)
    except InvalidRequestError as e:
        logger.info("reviews_request_rejected", reason=str(e))
        return error_response(str(e), 400)

    try:
        request = plan_request(
            url,
            page=page_number,
            work_id=work_id,
            page_token=page_token,
            api_key=api_key,
        )
        result = await pagination_coordinator.fetch_page(request)
        response = ReviewsPageResponse.from_result(result)

    except BootstrapError as e:
        logger.error("reviews_bootstrap_failed", url=url, reason=type(e).__name__, error=str(e))
        return error_response(BOOTSTRAP_FAILED_MESSAGE, 500)

    except ReviewQueryError as e:
        logger.error("reviews_query_failed", url=url, page=page_number, reason=type(e).__name__, error=str(e))
        return error_response(QUERY_FAILED_MESSAGE, 500)

    except Exception:
        logger.exception("reviews_request_failed", url=url, page=page_number)
        return error_response(UNEXPECTED_ERROR_MESSAGE, 500)

    logger.info(
        "reviews_page_served",
        mode=request.mode,
        page=result.pagination.current_page,
        reviews_count=response.total_filtered,
    )

    return response
