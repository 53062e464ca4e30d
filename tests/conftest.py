"""Pytest configuration and fixtures."""

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from app.main import app
from tests.factories import make_book_page, make_graphql_response


@pytest.fixture
def book_page_html() -> str:
    return make_book_page()


@pytest.fixture
def graphql_response() -> Dict[str, Any]:
    return make_graphql_response()


@pytest.fixture(scope="function")
def client():
    """Create test client."""
    with TestClient(app) as test_client:
        yield test_client
