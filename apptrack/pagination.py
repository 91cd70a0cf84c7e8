"""Page-window computation over an ordered sequence."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class PaginationState:
    current_page: int
    items_per_page: int
    total_items: int
    total_pages: int

    @property
    def start_index(self) -> int:
        return (self.current_page - 1) * self.items_per_page

    @property
    def end_index(self) -> int:
        return min(self.start_index + self.items_per_page, self.total_items)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


def paginate(total_items: int, items_per_page: int = DEFAULT_PAGE_SIZE, requested_page: int = 1) -> PaginationState:
    """Clamp *requested_page* into ``[1, total_pages]``; there is always a page 1."""
    total_items = max(0, int(total_items))
    items_per_page = max(1, int(items_per_page))
    total_pages = max(1, math.ceil(total_items / items_per_page))
    page = max(1, min(int(requested_page), total_pages))
    return PaginationState(
        current_page=page,
        items_per_page=items_per_page,
        total_items=total_items,
        total_pages=total_pages,
    )


def page_items(items: Sequence[T], state: PaginationState) -> list[T]:
    start = state.start_index
    return list(items[start:start + state.items_per_page])
