"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram, CollectorRegistry

# Create registry
registry = CollectorRegistry()

# Upstream calls
upstream_requests_total = Counter(
    "upstream_requests_total",
    "Total number of upstream requests",
    ["upstream", "status_code"],
    registry=registry,
)

bootstrap_failures_total = Counter(
    "bootstrap_failures_total",
    "Total number of book page bootstrap failures",
    ["reason"],
    registry=registry,
)

review_query_failures_total = Counter(
    "review_query_failures_total",
    "Total number of review query service failures",
    ["reason"],
    registry=registry,
)

# Served pages
pages_served_total = Counter(
    "pages_served_total",
    "Total number of review pages served",
    ["mode"],
    registry=registry,
)

reviews_served_total = Counter(
    "reviews_served_total",
    "Total number of favorable reviews served",
    ["mode"],
    registry=registry,
)

page_fetch_duration_seconds = Histogram(
    "page_fetch_duration_seconds",
    "Time to fetch and normalize one page of reviews",
    ["mode"],
    registry=registry,
)
