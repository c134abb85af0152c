"""Centralized constants for Shelf core modules."""

from __future__ import annotations


# ============================================================
# Books
# ============================================================

MAX_TITLE_LENGTH = 200
MAX_AUTHOR_LENGTH = 100
MAX_SUMMARY_LENGTH = 1000
MIN_PAGES = 1

# Fields the embedding text is built from. Editing any of them makes a stored
# vector stale.
EMBEDDED_FIELDS = ("title", "author", "pages")


# ============================================================
# Search
# ============================================================

DEFAULT_SEARCH_LIMIT = 5
MAX_SEARCH_QUERY = 2000
MAX_LIMIT = 100
