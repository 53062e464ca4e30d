"""Client for the Goodreads GraphQL review query service."""

import httpx
from typing import Any, Dict, Optional
import structlog

from app.config import settings
from app.models import ReviewBatch
from app.monitoring.metrics import upstream_requests_total, review_query_failures_total
from app.normalizers.review_normalizer import review_normalizer, NormalizationError

logger = structlog.get_logger(__name__)

OPERATION_NAME = "getReviews"
RESOURCE_TYPE_WORK = "WORK"

REVIEWS_QUERY = """
query getReviews($filters: BookReviewsFilterInput!, $pagination: PaginationInput) {
  getReviews(filters: $filters, pagination: $pagination) {
    totalCount
    edges {
      node {
        id
        text
        rating
        createdAt
        creator {
          id: legacyId
          name
          webUrl
        }
      }
    }
    pageInfo {
      prevPageToken
      nextPageToken
    }
  }
}
"""


class ReviewQueryError(Exception):
    """Base exception for review query service errors."""
    pass


class ReviewQueryHTTPError(ReviewQueryError):
    """Non-success HTTP status from the review service."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ReviewQueryTransportError(ReviewQueryError):
    """The request never produced a response."""
    pass


class ReviewQueryShapeError(ReviewQueryError):
    """The response lacks the expected getReviews connection."""
    pass


def build_variables(work_id: str, page_token: Optional[str], limit: int) -> Dict[str, Any]:
    """
    Build GraphQL variables for a reviews query.

    Args:
        work_id: Canonical work identifier
        page_token: Continuation cursor, attached only when present
        limit: Page size

    Returns:
        Variables dict
    """
    variables = {
        "filters": {
            "resourceType": RESOURCE_TYPE_WORK,
            "resourceId": work_id,
        },
        "pagination": {
            "limit": limit,
        },
    }

    if page_token:
        variables["pagination"]["after"] = page_token

    return variables


class ReviewQueryClient:
    """Client for fetching review pages by continuation cursor."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        page_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize review query client.

        Args:
            endpoint: GraphQL endpoint URL
            page_size: Reviews requested per page
            transport: Optional httpx transport, mainly for tests
        """
        self.endpoint = endpoint or settings.graphql_endpoint
        self.page_size = page_size or settings.reviews_page_size
        self.transport = transport

    @staticmethod
    def _get_headers(api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "Origin": settings.goodreads_origin,
            "Referer": settings.get_referer(),
        }

    async def _post(self, payload: Dict[str, Any], api_key: str) -> Dict[str, Any]:
        """
        Send the GraphQL request.

        Raises:
            ReviewQueryError: On transport errors, non-success status or invalid JSON
        """
        try:
            async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    headers=self._get_headers(api_key),
                    json=payload,
                )
        except httpx.HTTPError as e:
            upstream_requests_total.labels(upstream="review_query", status_code="error").inc()
            logger.error("review_query_transport_error", error=str(e))
            raise ReviewQueryTransportError(f"Transport error: {e}")

        upstream_requests_total.labels(upstream="review_query", status_code=str(response.status_code)).inc()

        if not response.is_success:
            logger.error("review_query_failed", status=response.status_code, response=response.text)
            raise ReviewQueryHTTPError(f"Request failed: {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ReviewQueryShapeError(f"Response is not JSON: {e}")

    async def get_reviews(
        self,
        work_id: str,
        api_key: str,
        page_token: Optional[str] = None,
    ) -> ReviewBatch:
        """
        Get one page of favorable reviews for a work.

        Args:
            work_id: Canonical work identifier
            api_key: Access credential for the review service
            page_token: Continuation cursor from the previous page

        Returns:
            ReviewBatch with reviews rated 4 or 5 and the next cursor

        Raises:
            ReviewQueryError: On any service or response failure
        """
        payload = {
            "operationName": OPERATION_NAME,
            "variables": build_variables(work_id, page_token, self.page_size),
            "query": REVIEWS_QUERY,
        }

        logger.info("fetching_reviews", work_id=work_id, has_page_token=bool(page_token))

        try:
            data = await self._post(payload, api_key)
            if not isinstance(data, dict):
                raise ReviewQueryShapeError("Response is not a JSON object")

            result = data.get("data")
            connection = result.get(OPERATION_NAME) if isinstance(result, dict) else None
            if not isinstance(connection, dict):
                logger.error("review_query_missing_connection", work_id=work_id, errors=data.get("errors"))
                raise ReviewQueryShapeError(f"Response has no {OPERATION_NAME} connection")

            nodes = [edge.get("node") for edge in connection.get("edges") or [] if isinstance(edge, dict)]
            reviews = review_normalizer.normalize_many(node for node in nodes if isinstance(node, dict))

        except ReviewQueryError as e:
            review_query_failures_total.labels(reason=type(e).__name__).inc()
            raise
        except NormalizationError as e:
            review_query_failures_total.labels(reason="NormalizationError").inc()
            logger.error("review_normalization_failed", work_id=work_id, error=str(e))
            raise ReviewQueryShapeError(f"Unusable review record: {e}")

        page_info = connection.get("pageInfo") or {}
        next_page_token = page_info.get("nextPageToken") or None

        logger.info(
            "reviews_fetched",
            work_id=work_id,
            received=len(nodes),
            reviews_count=len(reviews),
            has_next=bool(next_page_token),
        )

        return ReviewBatch(
            reviews=reviews,
            next_page_token=next_page_token,
            total_count=connection.get("totalCount") or 0,
        )


# Global review query client instance
review_query_client = ReviewQueryClient()
