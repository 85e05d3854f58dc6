"""
Range Filter

Numeric and date-typed range sliders. Each ranged attribute key has a
RangeState holding its bounds and the current selection; date ranges store
POSIX timestamps and compare by UTC calendar day.
"""

import math
from typing import Any, Dict, Hashable, Iterable, List, Optional

from facetfilter.accessor import AttributeAccessor
from facetfilter.core.config.models import RangeSettings
from facetfilter.core.state.store import RangeState, StateStore
from facetfilter.filters.base import Filter, FilterResult
from facetfilter.utils import (
    current_year_window, from_timestamp, parse_date, parse_number, to_timestamp,
)


RANGE_TYPES = ("number", "date")


def format_bound(value: float, range_type: str = "number") -> str:
    """Render a range bound the way it appears in parameter maps."""
    if range_type == "date":
        return from_timestamp(value).isoformat()
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class RangeIndex(Filter):
    """
    Filter items by numeric or date attribute ranges.

    Only ranges whose selection is narrower than their bounds constrain the
    visible set; a range at full extent lets items lacking the attribute
    through.
    """

    def __init__(
        self,
        state: StateStore,
        accessor: Optional[AttributeAccessor] = None,
        item_ids: Iterable[Hashable] = (),
        settings: Optional[RangeSettings] = None,
    ):
        super().__init__(state)
        self.accessor = accessor
        self.item_ids: List[Hashable] = list(item_ids)
        self.settings = settings or RangeSettings()

    @property
    def name(self) -> str:
        return "range"

    @property
    def description(self) -> str:
        narrowed = self._narrowed()
        if not narrowed:
            return "No range constraints"
        return ", ".join(
            f"{key} in [{format_bound(r.current_min, r.type)}, {format_bound(r.current_max, r.type)}]"
            for key, r in narrowed.items()
        )

    @property
    def is_active(self) -> bool:
        return bool(self._narrowed())

    def _narrowed(self) -> Dict[str, RangeState]:
        return {key: r for key, r in self.state.ranges.items() if not r.is_full}

    def set_items(self, item_ids: Iterable[Hashable], accessor: Optional[AttributeAccessor] = None) -> None:
        """Point the index at a (new) collection used for bounds and histograms."""
        self.item_ids = list(item_ids)
        if accessor is not None:
            self.accessor = accessor

    def parse_value(self, raw: Any, range_type: str) -> Optional[float]:
        """Parse a raw value into the comparable float for a range type."""
        if range_type == "date":
            parsed = parse_date(raw)
            return to_timestamp(parsed) if parsed is not None else None
        return parse_number(raw)

    def _values(self, key: str, range_type: str) -> List[float]:
        if self.accessor is None:
            return []
        values = []
        for item_id in self.item_ids:
            value = self.parse_value(self.accessor.get_attribute(item_id, key), range_type)
            if value is not None:
                values.append(value)
        return values

    def calculate_min_max(self, key: str, range_type: str = "number"):
        """
        Scan the items for the extent of an attribute.

        Falls back to the configured window for numbers and the current
        calendar year for dates when no item has a usable value.
        """
        values = self._values(key, range_type)
        if values:
            return min(values), max(values)

        self.logger.debug(f"No valid {range_type} values for {key}, using fallback window")
        if range_type == "date":
            start, end = current_year_window()
            return to_timestamp(start), to_timestamp(end)
        return self.settings.default_min, self.settings.default_max

    def add_range(
        self,
        key: str,
        range_type: str = "number",
        min_value: Any = None,
        max_value: Any = None,
        step: float = 1,
    ) -> RangeState:
        """
        Register a range slider for an attribute.

        Omitted bounds are computed from the items. An existing selection
        for the key (for example one loaded from a link) is kept, clamped
        into the new bounds.
        """
        if range_type not in RANGE_TYPES:
            self.logger.warning(f"Unknown range type {range_type!r} for {key}, using number")
            range_type = "number"

        lo = self.parse_value(min_value, range_type) if min_value is not None else None
        hi = self.parse_value(max_value, range_type) if max_value is not None else None
        if lo is None or hi is None:
            computed_lo, computed_hi = self.calculate_min_max(key, range_type)
            lo = computed_lo if lo is None else lo
            hi = computed_hi if hi is None else hi
        if lo > hi:
            lo, hi = hi, lo

        if step is None or step <= 0:
            self.logger.warning(f"Invalid step {step!r} for {key}, using 1")
            step = 1

        new_range = RangeState(min=lo, max=hi, current_min=lo, current_max=hi, step=step, type=range_type)

        existing = self.state.ranges.get(key)
        if existing is not None:
            new_range.clamp(existing.current_min, existing.current_max)

        self.state.ranges[key] = new_range
        self.logger.info(f"Range added for {key}: {format_bound(lo, range_type)} to {format_bound(hi, range_type)}")
        return new_range

    def set_range(self, key: str, lo: Any, hi: Any) -> bool:
        """
        Move a range selection.

        Values are clamped into the bounds and a reversed pair is swapped.

        Returns:
            False if the key has no range or a value cannot be parsed
        """
        current = self.state.ranges.get(key)
        if current is None:
            self.logger.warning(f"No range registered for {key}")
            return False

        lo_value = self.parse_value(lo, current.type)
        hi_value = self.parse_value(hi, current.type)
        if lo_value is None or hi_value is None:
            self.logger.warning(f"Invalid range values for {key}: {lo!r}, {hi!r}")
            return False

        current.clamp(lo_value, hi_value)
        self.logger.debug(f"Range {key} set to {current.current_min}..{current.current_max}")
        return True

    def remove_range(self, key: str) -> bool:
        if self.state.ranges.pop(key, None) is None:
            return False
        self.logger.debug(f"Range removed for {key}")
        return True

    def get_range(self, key: str) -> Optional[RangeState]:
        return self.state.ranges.get(key)

    def reset_range(self, key: str) -> bool:
        """Widen a selection back to the full bounds."""
        current = self.state.ranges.get(key)
        if current is None:
            return False
        current.current_min, current.current_max = current.min, current.max
        return True

    def evaluate(self, key: str, raw: Any) -> bool:
        """
        Inclusive membership test of a raw value against a range selection.

        Unparsable or missing values fail. Date values and bounds are
        reduced to UTC calendar days so the whole end day is included.
        """
        current = self.state.ranges.get(key)
        if current is None:
            return True

        value = self.parse_value(raw, current.type)
        if value is None:
            return False

        if current.type == "date":
            day = from_timestamp(value).date()
            if math.isfinite(current.current_min) and day < from_timestamp(current.current_min).date():
                return False
            if math.isfinite(current.current_max) and day > from_timestamp(current.current_max).date():
                return False
            return True

        return current.current_min <= value <= current.current_max

    def apply(self, item_id: Any, accessor: AttributeAccessor) -> FilterResult:
        for key, current in self._narrowed().items():
            raw = accessor.get_attribute(item_id, key)
            if not self.evaluate(key, raw):
                return FilterResult(
                    passed=False,
                    reason=f"{key}={raw!r} outside [{format_bound(current.current_min, current.type)}, "
                           f"{format_bound(current.current_max, current.type)}]",
                    metadata={"key": key, "value": raw},
                )
        return FilterResult(passed=True, reason="Within all ranges")

    def histogram(self, key: str, bins: Optional[int] = None) -> Dict[str, Any]:
        """
        Equal-width histogram over the full value domain of an attribute.

        Returns:
            Dictionary with raw ``counts``, bar ``heights`` (percent of the
            tallest bin, floored), ``bin_edges`` and the tallest bin's count
            as ``max``. Empty lists when no item has a value.
        """
        bins = bins or self.settings.histogram_bins
        current = self.state.ranges.get(key)
        range_type = current.type if current is not None else "number"
        values = self._values(key, range_type)

        if not values or bins < 1:
            return {"counts": [], "heights": [], "bin_edges": [], "max": 0}

        low, high = min(values), max(values)
        width = (high - low) / bins

        counts = [0] * bins
        for value in values:
            if value == high or width == 0:
                counts[-1] += 1
            else:
                counts[min(int((value - low) // width), bins - 1)] += 1

        max_count = max(counts)
        floor = self.settings.histogram_floor
        heights = [max(floor, round(count / max_count * 100)) for count in counts]

        return {
            "counts": counts,
            "heights": heights,
            "bin_edges": [low + i * width for i in range(bins + 1)],
            "max": max_count,
        }
