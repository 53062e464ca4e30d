"""Normalizer for transforming raw Goodreads review records to canonical format."""

import re
from datetime import datetime, timezone
from typing import Dict, Any, Iterable, List, Optional
import structlog

from app.models import Review, MIN_FAVORABLE_RATING, MAX_RATING, ANONYMOUS_REVIEWER

logger = structlog.get_logger(__name__)

TAG_PATTERN = re.compile(r"<[^>]*>")

# createdAt values above this are epoch milliseconds
EPOCH_MILLIS_THRESHOLD = 10 ** 11


class NormalizationError(Exception):
    """Raised when a raw review record cannot be normalized."""
    pass


def strip_all_tags(text: Optional[str]) -> str:
    """Remove every <...> delimited substring, left to right, non-recursively."""
    if not text:
        return ""
    return TAG_PATTERN.sub("", text)


def human_date(created_at: Any) -> str:
    """
    Format an upstream epoch timestamp as M/D/YYYY (UTC).

    Args:
        created_at: Epoch timestamp in milliseconds or seconds

    Returns:
        Formatted date, or empty string when the timestamp is absent
    """
    if created_at is None or created_at == "" or created_at == 0:
        return ""

    try:
        value = float(created_at)
    except (TypeError, ValueError):
        raise NormalizationError(f"Invalid createdAt timestamp: {created_at!r}")

    if abs(value) > EPOCH_MILLIS_THRESHOLD:
        value = value / 1000.0

    try:
        moment = datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise NormalizationError(f"Timestamp out of range: {created_at!r}")

    return f"{moment.month}/{moment.day}/{moment.year}"


class ReviewNormalizer:
    """Normalizer for review records from both the book page and the query service."""

    @staticmethod
    def is_favorable(record: Dict[str, Any]) -> bool:
        """Check whether a raw record carries an integer rating of 4 or 5."""
        rating = record.get("rating")
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            return False
        return MIN_FAVORABLE_RATING <= rating <= MAX_RATING and int(rating) == rating

    @staticmethod
    def normalize_review(record: Dict[str, Any]) -> Optional[Review]:
        """
        Normalize a single review record to canonical format.

        Args:
            record: Raw review with rating, text, createdAt and an optional
                resolved creator ({"name", "webUrl"})

        Returns:
            Review, or None when the rating is below the favorable threshold

        Raises:
            NormalizationError: If a favorable record is structurally unusable
        """
        if not ReviewNormalizer.is_favorable(record):
            return None

        review_id = record.get("id")
        if review_id is None or review_id == "":
            raise NormalizationError("Review record has no id")

        creator = record.get("creator") or {}
        if not isinstance(creator, dict):
            raise NormalizationError(f"Review {review_id} has malformed creator")

        return Review(
            id=str(review_id),
            rating=int(record["rating"]),
            reviewer=creator.get("name") or ANONYMOUS_REVIEWER,
            reviewer_url=creator.get("webUrl") or "",
            date=human_date(record.get("createdAt")),
            content=strip_all_tags(record.get("text")),
        )

    def normalize_many(self, records: Iterable[Dict[str, Any]]) -> List[Review]:
        """
        Normalize a batch, keeping favorable reviews in upstream order.

        Any NormalizationError aborts the whole batch.
        """
        reviews = []
        seen = 0
        for record in records:
            seen += 1
            review = self.normalize_review(record)
            if review:
                reviews.append(review)

        logger.debug("reviews_normalized", received=seen, kept=len(reviews))
        return reviews


# Global normalizer instance
review_normalizer = ReviewNormalizer()
