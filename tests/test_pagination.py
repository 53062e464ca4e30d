"""Tests for request planning, the cursor cache, the coordinator and the browser."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from app.config import settings
from app.graphql.client import ReviewQueryHTTPError
from app.models import BookInfo, BootstrapResult, Review, ReviewBatch
from app.pagination.browser import ReviewBrowser
from app.pagination.cache import PageTokenCache, PaginationError, UnresolvablePageError
from app.pagination.coordinator import (
    BootstrapRequest,
    CursorFetchRequest,
    PaginationCoordinator,
    plan_request,
)
from app.parsers.hydration import HydrationStateMissingError
from tests.factories import BOOK_URL, WORK_ID


BOOK = BookInfo(title="The Great Gatsby", author="F. Scott Fitzgerald", cover_url="https://img/gatsby.jpg")


def make_bootstrap_result(next_page_token="cursor-2"):
    return BootstrapResult(
        work_id=WORK_ID,
        book=BOOK,
        reviews=[Review(id="r1", rating=5), Review(id="r2", rating=4)],
        next_page_token=next_page_token,
        total_count=90,
        api_key="da2-page",
    )


def make_batch(page, next_page_token):
    return ReviewBatch(
        reviews=[Review(id=f"p{page}-r1", rating=5)],
        next_page_token=next_page_token,
        total_count=90,
    )


def make_coordinator(bootstrap_result=None, batches=None):
    """Coordinator whose review client answers with batches keyed by cursor."""
    bootstrapper = MagicMock()
    bootstrapper.bootstrap = AsyncMock(return_value=bootstrap_result or make_bootstrap_result())

    batches = batches or {
        "cursor-2": make_batch(2, "cursor-3"),
        "cursor-3": make_batch(3, "cursor-4"),
        "cursor-4": make_batch(4, None),
    }

    async def get_reviews(work_id, api_key, page_token=None):
        return batches[page_token]

    query_client = MagicMock()
    query_client.get_reviews = AsyncMock(side_effect=get_reviews)

    return PaginationCoordinator(bootstrapper=bootstrapper, query_client=query_client)


# plan_request

def test_plan_page_one_always_bootstraps():
    request = plan_request(BOOK_URL, page=1, work_id=WORK_ID, page_token="cursor-2", api_key="da2-x")

    assert isinstance(request, BootstrapRequest)
    assert request.api_key == "da2-x"


def test_plan_without_work_id_bootstraps():
    assert isinstance(plan_request(BOOK_URL, page=3, page_token="cursor-3"), BootstrapRequest)


def test_plan_cursor_fetch():
    request = plan_request(BOOK_URL, page=2, work_id=WORK_ID, page_token="cursor-2", api_key="da2-x")

    assert request == CursorFetchRequest(
        url=BOOK_URL, page=2, work_id=WORK_ID, page_token="cursor-2", api_key="da2-x"
    )
    assert request.mode == "cursor_fetch"


def test_plan_rejects_page_zero():
    with pytest.raises(ValueError):
        plan_request(BOOK_URL, page=0)


# PageTokenCache

def test_cache_page_one_needs_no_cursor():
    assert PageTokenCache().cursor_for(1) is None


def test_cache_forward_chain():
    cache = PageTokenCache()
    cache.record(1, "cursor-2")
    cache.record(2, "cursor-3")

    assert cache.cursor_for(2) == "cursor-2"
    assert cache.cursor_for(3) == "cursor-3"
    assert list(cache) == [(1, "cursor-2"), (2, "cursor-3")]
    assert cache.highest_page == 2


def test_cache_unvisited_predecessor_is_unresolvable():
    cache = PageTokenCache()
    cache.record(1, "cursor-2")

    with pytest.raises(UnresolvablePageError) as exc_info:
        cache.cursor_for(3)

    assert exc_info.value.page == 3


def test_cache_past_last_page_is_unresolvable():
    cache = PageTokenCache()
    cache.record(1, None)

    with pytest.raises(UnresolvablePageError):
        cache.cursor_for(2)


def test_cache_is_append_only():
    cache = PageTokenCache()
    cache.record(1, "cursor-2")
    cache.record(1, "cursor-other")

    assert cache.get(1) == "cursor-2"


def test_cache_reset():
    cache = PageTokenCache()
    cache.record(1, "cursor-2")
    cache.reset()

    assert len(cache) == 0
    assert 1 not in cache


# PaginationCoordinator

@pytest.mark.asyncio
async def test_coordinator_bootstrap_page():
    coordinator = make_coordinator()
    cache = PageTokenCache()

    result = await coordinator.fetch_page(BootstrapRequest(url=BOOK_URL), cache)

    assert result.book == BOOK
    assert result.total_filtered == 2
    assert result.total_count == 90
    assert result.pagination.current_page == 1
    assert result.pagination.has_prev is False
    assert result.pagination.has_next is True
    assert result.pagination.next_page_token == "cursor-2"
    assert result.pagination.work_id == WORK_ID
    assert result.pagination.api_key == "da2-page"
    assert cache.get(1) == "cursor-2"
    coordinator.query_client.get_reviews.assert_not_called()


@pytest.mark.asyncio
async def test_coordinator_bootstrap_last_page():
    coordinator = make_coordinator(bootstrap_result=make_bootstrap_result(next_page_token=None))

    result = await coordinator.fetch_page(BootstrapRequest(url=BOOK_URL))

    assert result.pagination.has_next is False


@pytest.mark.asyncio
async def test_coordinator_cursor_fetch():
    coordinator = make_coordinator()
    cache = PageTokenCache()
    request = CursorFetchRequest(url=BOOK_URL, page=2, work_id=WORK_ID, page_token="cursor-2", api_key="da2-page")

    result = await coordinator.fetch_page(request, cache)

    assert result.book is None
    assert result.pagination.current_page == 2
    assert result.pagination.has_prev is True
    assert result.pagination.has_next is True
    assert result.pagination.next_page_token == "cursor-3"
    assert result.pagination.work_id == WORK_ID
    assert cache.get(2) == "cursor-3"
    coordinator.bootstrapper.bootstrap.assert_not_called()
    coordinator.query_client.get_reviews.assert_awaited_once_with(
        work_id=WORK_ID, api_key="da2-page", page_token="cursor-2"
    )


@pytest.mark.asyncio
async def test_coordinator_cursor_fetch_uses_fallback_key():
    coordinator = make_coordinator()
    request = CursorFetchRequest(url=BOOK_URL, page=2, work_id=WORK_ID, page_token="cursor-2")

    result = await coordinator.fetch_page(request)

    assert result.pagination.api_key == settings.fallback_api_key


@pytest.mark.asyncio
async def test_coordinator_failure_leaves_cache_untouched():
    coordinator = make_coordinator()
    coordinator.query_client.get_reviews = AsyncMock(side_effect=ReviewQueryHTTPError("Request failed: 500", 500))
    cache = PageTokenCache()
    cache.record(1, "cursor-2")

    with pytest.raises(ReviewQueryHTTPError):
        await coordinator.fetch_page(
            CursorFetchRequest(url=BOOK_URL, page=2, work_id=WORK_ID, page_token="cursor-2"), cache
        )

    assert list(cache) == [(1, "cursor-2")]


# ReviewBrowser

@pytest.mark.asyncio
async def test_browser_walks_forward_to_last_page():
    browser = ReviewBrowser(make_coordinator())

    await browser.open(BOOK_URL)
    await browser.next_page()
    await browser.next_page()
    last = await browser.next_page()

    assert last.pagination.current_page == 4
    assert last.pagination.has_next is False
    assert last.book is None
    assert browser.book == BOOK
    assert browser.work_id == WORK_ID

    with pytest.raises(PaginationError):
        await browser.next_page()


@pytest.mark.asyncio
async def test_browser_previous_page_uses_cached_cursor():
    coordinator = make_coordinator()
    browser = ReviewBrowser(coordinator)

    await browser.open(BOOK_URL)
    await browser.next_page()
    await browser.next_page()
    result = await browser.previous_page()

    assert result.pagination.current_page == 2
    assert coordinator.query_client.get_reviews.await_args.kwargs["page_token"] == "cursor-2"
    assert coordinator.bootstrapper.bootstrap.await_count == 1


@pytest.mark.asyncio
async def test_browser_back_to_first_page_bootstraps_again():
    coordinator = make_coordinator()
    browser = ReviewBrowser(coordinator)

    await browser.open(BOOK_URL)
    await browser.next_page()
    await browser.next_page()
    result = await browser.go_to(1)

    assert result.pagination.current_page == 1
    assert result.book == BOOK
    assert coordinator.bootstrapper.bootstrap.await_count == 2
    assert list(browser.cache) == [(1, "cursor-2")]

    with pytest.raises(PaginationError):
        await browser.previous_page()


@pytest.mark.asyncio
async def test_browser_jump_to_unvisited_page_is_unresolvable():
    browser = ReviewBrowser(make_coordinator())
    await browser.open(BOOK_URL)

    with pytest.raises(UnresolvablePageError):
        await browser.go_to(3)

    assert browser.current_page == 1


@pytest.mark.asyncio
async def test_browser_failed_request_keeps_current_page():
    coordinator = make_coordinator()
    browser = ReviewBrowser(coordinator)
    first = await browser.open(BOOK_URL)

    coordinator.query_client.get_reviews = AsyncMock(side_effect=ReviewQueryHTTPError("Request failed: 502", 502))
    with pytest.raises(ReviewQueryHTTPError):
        await browser.next_page()

    assert browser.current is first
    assert browser.current_page == 1


@pytest.mark.asyncio
async def test_browser_failed_open_keeps_previous_session():
    coordinator = make_coordinator()
    browser = ReviewBrowser(coordinator)
    await browser.open(BOOK_URL)
    await browser.next_page()

    coordinator.bootstrapper.bootstrap = AsyncMock(side_effect=HydrationStateMissingError("gone"))
    with pytest.raises(HydrationStateMissingError):
        await browser.go_to(1)

    assert browser.current_page == 2
    assert list(browser.cache) == [(1, "cursor-2"), (2, "cursor-3")]


@pytest.mark.asyncio
async def test_browser_requires_open_book():
    with pytest.raises(PaginationError):
        await ReviewBrowser(make_coordinator()).go_to(2)
