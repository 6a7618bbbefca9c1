"""
Offset/limit pagination.

WHY: Out-of-range paging values are clamped, never rejected, so a client
asking for limit=5000 simply gets the maximum page.
"""

from dataclasses import dataclass
from typing import Optional

from helpdesk.core.config import settings


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int


def clamp_pagination(
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    default_limit: Optional[int] = None,
    max_limit: Optional[int] = None,
) -> Pagination:
    """
    Normalize raw paging parameters.

    Args:
        limit: Requested page size; None means the default
        offset: Requested offset; None or negative means 0
        default_limit: Override for PAGINATION_DEFAULT_LIMIT
        max_limit: Override for PAGINATION_MAX_LIMIT

    Returns:
        Pagination with 1 <= limit <= max_limit and offset >= 0
    """
    default_limit = default_limit or settings.PAGINATION_DEFAULT_LIMIT
    max_limit = max_limit or settings.PAGINATION_MAX_LIMIT

    if limit is None:
        limit = default_limit
    limit = max(1, min(int(limit), max_limit))

    offset = max(0, int(offset or 0))

    return Pagination(limit=limit, offset=offset)
