"""
Pagination helpers.

PagedResult is the stable response shape of every referral listing.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class PagedResult:
    """One page of a listing plus the totals it was cut from."""

    data: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False

    @classmethod
    def build(
        cls, data: list[dict[str, Any]], total: int, page: int, limit: int
    ) -> "PagedResult":
        """Derive page counters from the filtered total."""
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            data=data,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    @classmethod
    def empty(cls, page: int, limit: int) -> "PagedResult":
        """Well-formed zero-row page."""
        return cls(data=[], total=0, page=page, limit=limit)

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the external camelCase field names."""
        raw = asdict(self)
        return {
            "data": raw["data"],
            "total": raw["total"],
            "page": raw["page"],
            "limit": raw["limit"],
            "totalPages": raw["total_pages"],
            "hasNext": raw["has_next"],
            "hasPrev": raw["has_prev"],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PagedResult":
        """Inverse of to_dict, used when reading from the cache."""
        return cls(
            data=list(payload.get("data", [])),
            total=int(payload.get("total", 0)),
            page=int(payload.get("page", 1)),
            limit=int(payload.get("limit", 0)),
            total_pages=int(payload.get("totalPages", 0)),
            has_next=bool(payload.get("hasNext", False)),
            has_prev=bool(payload.get("hasPrev", False)),
        )


def normalize_pagination(
    page: int, limit: int, max_limit: int
) -> tuple[int, int]:
    """
    Validate page/limit and clamp limit to max_limit.

    Args:
        page: 1-indexed page number
        limit: Requested page size
        max_limit: Upper bound for page size

    Returns:
        Tuple of (page, limit)

    Raises:
        ValueError: If page or limit is below 1
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")
    return page, min(limit, max_limit)


def slice_page(items: list[Any], page: int, limit: int) -> list[Any]:
    """Return the items of a 1-indexed page."""
    offset = (page - 1) * limit
    return items[offset:offset + limit]
