"""Page request/response helpers shared by submission and student listings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def clamp(cls, page: object = 1, limit: object = DEFAULT_LIMIT) -> "PageRequest":
        """Build a request with safe bounds (page >= 1, limit in 1..100)."""
        try:
            p = int(page)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            p = 1
        try:
            lim = int(limit)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            lim = DEFAULT_LIMIT
        return cls(page=max(1, p), limit=max(1, min(MAX_LIMIT, lim)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.limit)


def slice_page(items: Sequence[T], req: PageRequest) -> Page[T]:
    """Cut one page out of an already filtered and sorted sequence."""
    window = list(items[req.offset: req.offset + req.limit])
    return Page(items=window, total=len(items), page=req.page, limit=req.limit)
