"""Page-window arithmetic shared by every list endpoint.

Inputs are validated upstream (positive ``page``, ``1 <= page_size <= max``);
nothing here rejects values.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PageWindow:
    current_page: int
    page_size: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool

    def as_dict(self) -> dict:
        return {
            "current_page": self.current_page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "total_items": self.total_items,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }


def page_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def page_window(total_items: int, page: int, page_size: int) -> PageWindow:
    total_pages = math.ceil(total_items / page_size)
    return PageWindow(
        current_page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_items=total_items,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def paginated(query_items: list, window: PageWindow) -> dict:
    return {"items": query_items, "pagination": window.as_dict()}
