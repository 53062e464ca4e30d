"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import pytest
from app import cli
from app.fetchers.book_page_fetcher import SessionBootstrapper
from app.graphql.client import ReviewQueryClient
from app.pagination.browser import ReviewBrowser
from app.pagination.coordinator import PaginationCoordinator
from tests.factories import BOOK_URL, html_transport, json_transport, make_book_page, make_graphql_response


def make_browser(graphql=None):
    return ReviewBrowser(
        PaginationCoordinator(
            bootstrapper=SessionBootstrapper(transport=html_transport(make_book_page())),
            query_client=ReviewQueryClient(transport=json_transport(graphql or make_graphql_response(next_page_token=None))),
        )
    )


@pytest.mark.asyncio
async def test_collect_pages_stops_at_last_page():
    pages = await cli.collect_pages(BOOK_URL, 5, browser=make_browser())

    assert [page["pagination"]["currentPage"] for page in pages] == [1, 2]
    assert pages[0]["book"]["title"] == "The Great Gatsby"
    assert pages[1]["book"] is None
    assert pages[1]["pagination"]["hasNext"] is False


def test_main_rejects_non_goodreads_url(capsys):
    assert cli.main(["https://example.com/book/1"]) == 2
    assert "Goodreads" in capsys.readouterr().err


def test_main_writes_output_file(tmp_path):
    output = tmp_path / "reviews.json"

    with patch("app.cli.ReviewBrowser", return_value=make_browser()):
        assert cli.main([BOOK_URL, "--pages", "2", "--output", str(output)]) == 0

    pages = json.loads(output.read_text(encoding="utf-8"))
    assert len(pages) == 2
    assert pages[0]["reviews"][0]["reviewerUrl"] == "https://www.goodreads.com/user/show/1-alice"
