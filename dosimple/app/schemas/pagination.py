"""
Generic paginated response schema and page/size normalisation.
Used by all list endpoints to provide consistent pagination metadata.
"""
from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_page(page: int | None) -> int:
    """Pages are 1-based; anything below 1 means the first page."""
    if page is None or page < 1:
        return 1
    return page


def normalize_page_size(size: int | None) -> int:
    """Non-positive sizes fall back to the default; large ones are capped."""
    if size is None or size < 1:
        return DEFAULT_PAGE_SIZE
    return min(size, MAX_PAGE_SIZE)


def page_offset(page: int, size: int) -> int:
    return (page - 1) * size


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response wrapper.
    Provides items, total count, current page, page size, and total pages.
    """

    items: list[T]
    total: int
    page: int
    size: int

    @computed_field  # type: ignore[misc]
    @property
    def pages(self) -> int:
        if self.size == 0:
            return 0
        return math.ceil(self.total / self.size)

    model_config = {"from_attributes": True}
