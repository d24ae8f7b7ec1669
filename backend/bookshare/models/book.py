"""
Catalog identity helpers for the books collection.

A book's identity is its (title, author) pair compared case-insensitively
after trimming; the ObjectId is only a storage handle.
"""
import re


def exact_match_pattern(value: str) -> re.Pattern:
    """Anchored, case-insensitive pattern matching ``value`` literally."""
    return re.compile(f"^{re.escape(value)}$", re.IGNORECASE)


def identity_filter(title: str, author: str) -> dict:
    """Mongo filter selecting the catalog entry for a normalized title/author pair."""
    return {
        "title": exact_match_pattern(title),
        "author": exact_match_pattern(author),
    }
