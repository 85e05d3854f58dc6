"""
Date Range Filter

Start/end date pickers per attribute. Selections are whole calendar days
(UTC): the start is held at midnight and the end at the last instant of
its day.
"""

from datetime import datetime
from typing import Any, Hashable, Iterable, List, Optional, Tuple

from facetfilter.accessor import AttributeAccessor
from facetfilter.core.state.store import DateRangeState, StateStore
from facetfilter.filters.base import Filter, FilterResult
from facetfilter.utils import current_year_window, end_of_day, parse_date, start_of_day


class DateRangeFilter(Filter):
    """Filter items whose date attribute falls inside a start/end pair."""

    def __init__(
        self,
        state: StateStore,
        accessor: Optional[AttributeAccessor] = None,
        item_ids: Iterable[Hashable] = (),
    ):
        super().__init__(state)
        self.accessor = accessor
        self.item_ids: List[Hashable] = list(item_ids)

    @property
    def name(self) -> str:
        return "date"

    @property
    def description(self) -> str:
        if not self.state.date_ranges:
            return "No date constraints"
        return ", ".join(
            f"{key} from {d.start.date().isoformat()} to {d.end.date().isoformat()}"
            for key, d in self.state.date_ranges.items()
        )

    @property
    def is_active(self) -> bool:
        return bool(self.state.date_ranges)

    def set_items(self, item_ids: Iterable[Hashable], accessor: Optional[AttributeAccessor] = None) -> None:
        self.item_ids = list(item_ids)
        if accessor is not None:
            self.accessor = accessor

    def calculate_bounds(self, key: str) -> Tuple[datetime, datetime]:
        """Earliest and latest item dates, or the current year when none parse."""
        dates = []
        if self.accessor is not None:
            for item_id in self.item_ids:
                parsed = parse_date(self.accessor.get_attribute(item_id, key))
                if parsed is not None:
                    dates.append(parsed)

        if not dates:
            self.logger.debug(f"No valid dates for {key}, using current year")
            return current_year_window()
        return min(dates), max(dates)

    def add_date_range(self, key: str, start: Any = None, end: Any = None) -> Optional[DateRangeState]:
        """
        Register a date range for an attribute.

        An existing selection for the key is kept. Omitted bounds are
        computed from the items.
        """
        existing = self.state.date_ranges.get(key)
        if existing is not None and start is None and end is None:
            return existing

        start_date = parse_date(start) if start is not None else None
        end_date = parse_date(end) if end is not None else None
        if (start is not None and start_date is None) or (end is not None and end_date is None):
            self.logger.warning(f"Invalid dates for {key}: {start!r}, {end!r}")
            return None

        if start_date is None or end_date is None:
            low, high = self.calculate_bounds(key)
            start_date = start_date or low
            end_date = end_date or high

        return self._store(key, start_date, end_date)

    def set_date_range(self, key: str, start: Any, end: Any) -> bool:
        """Set (or create) a date range selection. A reversed pair is swapped."""
        start_date, end_date = parse_date(start), parse_date(end)
        if start_date is None or end_date is None:
            self.logger.warning(f"Invalid dates for {key}: {start!r}, {end!r}")
            return False
        self._store(key, start_date, end_date)
        return True

    def _store(self, key: str, start: datetime, end: datetime) -> DateRangeState:
        if start > end:
            start, end = end, start
        state = DateRangeState(start=start_of_day(start), end=end_of_day(end))
        self.state.date_ranges[key] = state
        self.logger.debug(f"Date range {key}: {state.start.isoformat()} to {state.end.isoformat()}")
        return state

    def get_date_range(self, key: str) -> Optional[DateRangeState]:
        return self.state.date_ranges.get(key)

    def remove_date_range(self, key: str) -> bool:
        return self.state.date_ranges.pop(key, None) is not None

    def evaluate(self, key: str, raw: Any) -> bool:
        """Calendar-day inclusive test. Missing or unparsable dates fail."""
        selection = self.state.date_ranges.get(key)
        if selection is None:
            return True

        parsed = parse_date(raw)
        if parsed is None:
            return False

        day = start_of_day(parsed)
        return start_of_day(selection.start) <= day <= end_of_day(selection.end)

    def apply(self, item_id: Any, accessor: AttributeAccessor) -> FilterResult:
        for key in self.state.date_ranges:
            raw = accessor.get_attribute(item_id, key)
            if not self.evaluate(key, raw):
                return FilterResult(
                    passed=False,
                    reason=f"{key}={raw!r} outside date range",
                    metadata={"key": key, "value": raw},
                )
        return FilterResult(passed=True, reason="Within all date ranges")
