"""Only Good Reads - favorable Goodreads reviews, page by page."""

__version__ = "0.1.0"
