"""Page cursor arithmetic over the ordered visible ids."""

import logging
import math
from typing import Any, Dict, Hashable, List, Sequence

from facetfilter.core.state.store import StateStore


logger = logging.getLogger(__name__)


class Paginator:
    """Keeps ``1 <= current_page <= total_pages`` after every update."""

    def __init__(self, state: StateStore):
        self.state = state
        self.visible_count = 0

    @property
    def current_page(self) -> int:
        return self.state.pagination.current_page

    @property
    def total_pages(self) -> int:
        return self.state.pagination.total_pages

    def update(self, visible_count: int) -> None:
        """Recompute the page count for a new visible set and clamp the cursor."""
        pagination = self.state.pagination
        self.visible_count = max(0, visible_count)
        pagination.total_pages = max(1, math.ceil(self.visible_count / pagination.items_per_page))
        pagination.current_page = min(max(1, pagination.current_page), pagination.total_pages)

    def go_to_page(self, page: Any) -> bool:
        """Move to a page, clamped into range. Non-integer input is ignored."""
        try:
            page = int(page)
        except (TypeError, ValueError):
            logger.warning(f"Invalid page number: {page!r}")
            return False

        pagination = self.state.pagination
        pagination.current_page = min(max(1, page), pagination.total_pages)
        return True

    def next_page(self) -> bool:
        if self.current_page >= self.total_pages:
            return False
        self.state.pagination.current_page += 1
        return True

    def previous_page(self) -> bool:
        if self.current_page <= 1:
            return False
        self.state.pagination.current_page -= 1
        return True

    def set_items_per_page(self, count: Any) -> bool:
        """Change the page size and return to page 1. Non-positive sizes are ignored."""
        try:
            count = int(count)
        except (TypeError, ValueError):
            count = 0
        if count <= 0:
            logger.warning(f"Items per page must be positive, got {count!r}")
            return False

        self.state.pagination.items_per_page = count
        self.state.pagination.current_page = 1
        self.update(self.visible_count)
        return True

    def page_slice(self, ordered_ids: Sequence[Hashable]) -> List[Hashable]:
        pagination = self.state.pagination
        start = (pagination.current_page - 1) * pagination.items_per_page
        return list(ordered_ids[start:start + pagination.items_per_page])

    def page_info(self) -> Dict[str, Any]:
        pagination = self.state.pagination
        start = (pagination.current_page - 1) * pagination.items_per_page
        end = min(start + pagination.items_per_page, self.visible_count)
        return {
            "current_page": pagination.current_page,
            "total_pages": pagination.total_pages,
            "items_per_page": pagination.items_per_page,
            "visible_count": self.visible_count,
            "start": start + 1 if self.visible_count else 0,
            "end": end,
            "has_next": pagination.current_page < pagination.total_pages,
            "has_previous": pagination.current_page > 1,
        }
