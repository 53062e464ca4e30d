"""Adapter over the hydration state embedded in Goodreads book pages.

Goodreads renders book pages with Next.js and ships the Apollo client cache
inside ``<script id="__NEXT_DATA__">``. None of this is a public contract, so
every structural assumption the parser makes lives in the constants below and
any mismatch raises instead of producing partially filled data.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
from bs4 import BeautifulSoup
import structlog

from app.auth.credentials import extract_api_key
from app.models import BookInfo, Review, UNKNOWN_TITLE, UNKNOWN_AUTHOR
from app.normalizers.review_normalizer import review_normalizer, NormalizationError

logger = structlog.get_logger(__name__)

# Expected layout of the Apollo cache. Bump the version when any of these change.
APOLLO_STATE_SHAPE_VERSION = "2024-01"
NEXT_DATA_SCRIPT_ID = "__NEXT_DATA__"
APOLLO_STATE_PATH = ("props", "pageProps", "apolloState")
WORK_KEY_PREFIX = "Work:kca://work/"
WORK_TYPE_PREFIX = "Work:"
BOOK_KEY_PREFIX = "Book:"
REVIEW_KEY_PREFIX = "Review:"
ROOT_QUERY_KEY = "ROOT_QUERY"
REVIEWS_QUERY_PREFIX = "getReviews"
REF_FIELD = "__ref"


class BootstrapError(Exception):
    """Base exception for book page bootstrap failures."""
    pass


class HydrationStateMissingError(BootstrapError):
    """The page carries no usable hydration state."""
    pass


class HydrationStateMalformedError(BootstrapError):
    """The hydration state is not valid JSON."""
    pass


class ShapeDriftError(BootstrapError):
    """The hydration state no longer matches the expected Apollo cache layout."""

    def __init__(self, message: str, expectation: str):
        super().__init__(f"{message} (expected shape {APOLLO_STATE_SHAPE_VERSION}: {expectation})")
        self.expectation = expectation


@dataclass
class ParsedBookPage:
    """Structured content of a book page, before credential resolution."""
    work_id: str
    book: BookInfo
    reviews: List[Review]
    next_page_token: Optional[str]
    total_count: int
    extracted_api_key: Optional[str]


class HydrationStateParser(Protocol):
    """Contract for turning raw book page HTML into a ParsedBookPage."""

    shape_version: str

    def parse(self, html: str) -> ParsedBookPage:
        """Parse page HTML, raising BootstrapError on any failure."""
        ...


class ApolloStateParser:
    """Parser for the Next.js / Apollo hydration state on book pages."""

    shape_version = APOLLO_STATE_SHAPE_VERSION

    def parse(self, html: str) -> ParsedBookPage:
        """
        Parse a book page.

        Args:
            html: Raw page HTML

        Returns:
            ParsedBookPage

        Raises:
            BootstrapError: On missing, malformed or drifted hydration state
        """
        soup = BeautifulSoup(html, "html.parser")

        next_data = self._load_next_data(soup)
        apollo_state = self._dig(next_data, APOLLO_STATE_PATH)
        if not isinstance(apollo_state, dict) or not apollo_state:
            raise HydrationStateMissingError("apolloState not found in __NEXT_DATA__")

        try:
            work_id = self._find_work_id(apollo_state)
            book = self._extract_book_info(apollo_state)
            reviews = self._extract_reviews(apollo_state)
            next_page_token, total_count = self._extract_pagination(apollo_state)
        except BootstrapError:
            raise
        except NormalizationError as e:
            raise ShapeDriftError(str(e), "normalizable Review entities")
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ShapeDriftError(f"Unexpected entity layout: {e}", "flattened Apollo cache")

        script_texts = [script.string or "" for script in soup.find_all("script")]
        extracted_api_key = extract_api_key(script_texts, next_data)

        logger.info(
            "book_page_parsed",
            work_id=work_id,
            reviews_count=len(reviews),
            total_count=total_count,
            has_next=bool(next_page_token),
            api_key_extracted=bool(extracted_api_key),
        )

        return ParsedBookPage(
            work_id=work_id,
            book=book,
            reviews=reviews,
            next_page_token=next_page_token,
            total_count=total_count,
            extracted_api_key=extracted_api_key,
        )

    @staticmethod
    def _load_next_data(soup: BeautifulSoup) -> Dict[str, Any]:
        script = soup.find("script", id=NEXT_DATA_SCRIPT_ID)
        if script is None or not script.string:
            raise HydrationStateMissingError(f"<script id={NEXT_DATA_SCRIPT_ID}> not found")

        try:
            next_data = json.loads(script.string)
        except json.JSONDecodeError as e:
            raise HydrationStateMalformedError(f"Invalid JSON in {NEXT_DATA_SCRIPT_ID}: {e}")

        if not isinstance(next_data, dict):
            raise HydrationStateMalformedError(f"{NEXT_DATA_SCRIPT_ID} is not a JSON object")

        return next_data

    @staticmethod
    def _dig(data: Any, path) -> Any:
        for key in path:
            if not isinstance(data, dict):
                return None
            data = data.get(key)
        return data

    @staticmethod
    def _deref(apollo_state: Dict[str, Any], value: Any) -> Optional[Dict[str, Any]]:
        """Follow a {"__ref": key} pointer to its entity, if present."""
        if not isinstance(value, dict):
            return None
        ref = value.get(REF_FIELD)
        if not ref:
            return None
        entity = apollo_state.get(ref)
        return entity if isinstance(entity, dict) else None

    @staticmethod
    def _find_work_id(apollo_state: Dict[str, Any]) -> str:
        work_key = next((k for k in apollo_state if k.startswith(WORK_KEY_PREFIX)), None)
        if work_key is None:
            raise ShapeDriftError("No Work entity in apolloState", f"key prefixed {WORK_KEY_PREFIX!r}")
        return work_key[len(WORK_TYPE_PREFIX):]

    def _extract_book_info(self, apollo_state: Dict[str, Any]) -> BookInfo:
        book_key = next((k for k in apollo_state if k.startswith(BOOK_KEY_PREFIX)), None)
        if book_key is None:
            return BookInfo()

        book = apollo_state.get(book_key)
        if not isinstance(book, dict):
            return BookInfo()

        # Book -> primaryContributorEdge -> node -> name
        author = UNKNOWN_AUTHOR
        contributor_edge = self._deref(apollo_state, book.get("primaryContributorEdge"))
        if contributor_edge:
            contributor = self._deref(apollo_state, contributor_edge.get("node"))
            if contributor:
                author = contributor.get("name") or UNKNOWN_AUTHOR

        return BookInfo(
            title=book.get("title") or UNKNOWN_TITLE,
            author=author,
            cover_url=book.get("imageUrl") or "",
        )

    def _extract_reviews(self, apollo_state: Dict[str, Any]) -> List[Review]:
        records = []
        for key, entity in apollo_state.items():
            if not key.startswith(REVIEW_KEY_PREFIX) or not isinstance(entity, dict):
                continue
            creator = self._deref(apollo_state, entity.get("creator"))
            records.append({**entity, "creator": creator})

        return review_normalizer.normalize_many(records)

    @staticmethod
    def _extract_pagination(apollo_state: Dict[str, Any]):
        root_query = apollo_state.get(ROOT_QUERY_KEY)
        if not isinstance(root_query, dict):
            raise ShapeDriftError("No ROOT_QUERY entity in apolloState", "ROOT_QUERY entity")

        reviews_key = next((k for k in root_query if k.startswith(REVIEWS_QUERY_PREFIX)), None)
        reviews_data = root_query.get(reviews_key) if reviews_key else None
        if not isinstance(reviews_data, dict):
            return None, 0

        page_info = reviews_data.get("pageInfo") or {}
        return page_info.get("nextPageToken") or None, reviews_data.get("totalCount") or 0


# Global parser instance
apollo_state_parser = ApolloStateParser()
