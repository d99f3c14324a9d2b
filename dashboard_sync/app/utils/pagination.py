"""
Page/limit bookkeeping for paged lists.
"""

import math
from typing import Sequence, TypeVar

from shared.errors import ValidationError

from ..domain.models import PaginatedResponse

T = TypeVar("T")

DEFAULT_LIMIT = 20


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


class Paginator:
    """Current page, page size and totals; navigation stays within ``1..total_pages``."""

    def __init__(self, limit: int = DEFAULT_LIMIT):
        self._check_limit(limit)
        self.page = 1
        self.limit = limit
        self.total = 0
        self.total_pages = 0

    def set_total(self, total: int) -> None:
        if total < 0:
            raise ValidationError("total cannot be negative", details={"total": total})
        self.total = total
        self.total_pages = total_pages(total, self.limit)
        self.page = self._clamp(self.page)

    def go_to_page(self, page: int) -> int:
        self.page = self._clamp(page)
        return self.page

    def next_page(self) -> int:
        return self.go_to_page(self.page + 1)

    def prev_page(self) -> int:
        return self.go_to_page(self.page - 1)

    def set_limit(self, limit: int) -> None:
        """Change the page size and go back to the first page."""
        self._check_limit(limit)
        self.limit = limit
        self.page = 1
        self.total_pages = total_pages(self.total, limit)

    def reset(self) -> None:
        self.page = 1
        self.total = 0
        self.total_pages = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def _clamp(self, page: int) -> int:
        return max(1, min(page, self.total_pages))

    @staticmethod
    def _check_limit(limit: int) -> None:
        if limit < 1:
            raise ValidationError("limit must be at least 1", details={"limit": limit})


def paginate(items: Sequence[T], page: int = 1, limit: int = DEFAULT_LIMIT) -> PaginatedResponse[T]:
    """Slice ``items`` into one page; out-of-range pages are clamped."""
    paginator = Paginator(limit)
    paginator.set_total(len(items))
    paginator.go_to_page(page)
    start = paginator.offset
    return PaginatedResponse(
        data=list(items[start:start + limit]),
        total=paginator.total,
        page=paginator.page,
        limit=limit,
        total_pages=paginator.total_pages,
    )
