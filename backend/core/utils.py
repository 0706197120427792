"""
Utility functions for the price administration backend.

Includes:
- Slug generation
- Pagination helpers
- UTC datetime helpers
"""

import re
from datetime import datetime, timezone
from typing import Optional


def generate_slug(name: str) -> str:
    """
    Generate a URL-friendly slug from a string.

    Converts to lowercase, replaces spaces and underscores with hyphens,
    removes everything that is not ASCII alphanumeric.

    Args:
        name: String to convert to slug

    Returns:
        URL-friendly slug (may be empty for non-ASCII names)
    """
    slug = name.lower()
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"[^a-z0-9\-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def utc_now() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def calculate_offset(page: int = 1, per_page: int = 20) -> int:
    """
    Calculate database offset from page and per_page values.

    Args:
        page: Page number (1-indexed)
        per_page: Items per page

    Returns:
        Offset for database queries
    """
    return (max(page, 1) - 1) * per_page


def pagination_meta(total: int, page: int = 1, per_page: int = 20) -> dict:
    """
    Build the ``pagination`` block attached to list responses.

    Args:
        total: Total number of items across all pages
        page: Current page number (1-indexed)
        per_page: Number of items per page

    Returns:
        Dictionary with pagination metadata
    """
    total_pages = (total + per_page - 1) // per_page if per_page else 0
    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
