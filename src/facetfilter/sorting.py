"""
Sorting

Single-key, multi-key and custom-comparator ordering of item ids with
automatic detection of numeric, date and string attributes.
"""

import functools
import logging
import random
from typing import Any, Callable, Hashable, Iterable, List, Optional, Sequence, Union

from facetfilter.accessor import AttributeAccessor
from facetfilter.core.state.store import SortCriterion, StateStore
from facetfilter.utils import looks_like_iso_date, parse_date, parse_number, to_timestamp


DIRECTIONS = ("asc", "desc")

CriterionLike = Union[SortCriterion, dict, Sequence[str]]


def determine_sort_type(raw: Any) -> str:
    """
    Classify a raw value as 'number', 'date' or 'string'.

    Missing or empty values classify as 'string'.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return "string"
    if parse_number(raw) is not None:
        return "number"
    if looks_like_iso_date(raw) and parse_date(raw) is not None:
        return "date"
    return "string"


def sort_value(raw: Any, value_type: str) -> Any:
    """Comparable form of a raw value; None means missing."""
    if raw is None:
        return None
    if value_type == "number":
        return parse_number(raw)
    if value_type == "date":
        parsed = parse_date(raw)
        return to_timestamp(parsed) if parsed is not None else None
    return str(raw).lower()


def compare_values(a: Any, b: Any, direction: str = "asc") -> int:
    """
    Three-way comparison of two comparable values.

    Missing values sort last regardless of direction.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1

    result = (a > b) - (a < b)
    return -result if direction == "desc" else result


class SortEngine:
    """
    Orders item ids and records the active sort criteria in the StateStore.

    Only ``sort`` and ``sort_multiple`` are recorded; comparator sorts and
    shuffles leave no criteria behind.
    """

    def __init__(self, state: StateStore, accessor: Optional[AttributeAccessor] = None):
        self.state = state
        self.accessor = accessor
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def criteria(self) -> List[SortCriterion]:
        return list(self.state.sort)

    def _normalize(self, criterion: CriterionLike) -> Optional[SortCriterion]:
        if isinstance(criterion, SortCriterion):
            key, direction = criterion.key, criterion.direction
        elif isinstance(criterion, dict):
            key, direction = criterion.get("key"), criterion.get("direction", "asc")
        elif isinstance(criterion, (list, tuple)) and criterion:
            key = criterion[0]
            direction = criterion[1] if len(criterion) > 1 else "asc"
        else:
            return None

        if not key:
            return None

        direction = str(direction or "asc").lower()
        if direction not in DIRECTIONS:
            self.logger.warning(f"Invalid sort direction {direction!r} for {key}, using asc")
            direction = "asc"
        return SortCriterion(key=str(key), direction=direction)

    def _raw(self, item_id: Hashable, key: str) -> Any:
        return self.accessor.get_attribute(item_id, key) if self.accessor is not None else None

    def _sorted(self, ids: List[Hashable], criteria: List[SortCriterion]) -> List[Hashable]:
        if not ids:
            return []

        # types are detected from the first item, once per key for this batch
        for criterion in criteria:
            criterion.type = determine_sort_type(self._raw(ids[0], criterion.key))

        keyed = {
            item_id: [sort_value(self._raw(item_id, c.key), c.type) for c in criteria]
            for item_id in ids
        }

        def compare(a: Hashable, b: Hashable) -> int:
            for index, criterion in enumerate(criteria):
                result = compare_values(keyed[a][index], keyed[b][index], criterion.direction)
                if result:
                    return result
            return 0

        return sorted(ids, key=functools.cmp_to_key(compare))

    def sort(self, ids: Iterable[Hashable], key: str, direction: str = "asc") -> Optional[List[Hashable]]:
        """Sort by one key and record it as the active criterion."""
        return self.sort_multiple(ids, [SortCriterion(key=key, direction=direction)])

    def sort_multiple(self, ids: Iterable[Hashable], criteria: Iterable[CriterionLike]) -> Optional[List[Hashable]]:
        """
        Sort by several keys; the first non-zero comparison wins.

        Ties keep their relative order.

        Returns:
            The ordered ids, or None if the criteria were rejected
        """
        criteria = list(criteria or [])
        if not criteria:
            self.logger.error("Sort criteria must be a non-empty list")
            return None

        normalized = []
        for criterion in criteria:
            parsed = self._normalize(criterion)
            if parsed is None:
                self.logger.error(f"Invalid sort criterion: {criterion!r}")
                return None
            normalized.append(parsed)

        ordered = self._sorted(list(ids), normalized)
        self.state.sort = normalized
        summary = ", ".join(f"{c.key} {c.direction}" for c in normalized)
        self.logger.info(f"Sorted {len(ordered)} items by {summary}")
        return ordered

    def sort_with_comparator(
        self,
        ids: Iterable[Hashable],
        key: str,
        comparator: Callable[[Any, Any], Any],
    ) -> Optional[List[Hashable]]:
        """
        Sort with a caller-supplied comparator over raw attribute values.

        A comparator error, or a missing attribute on either side, counts as
        a tie for that pair. The result is not recorded as sort criteria.
        """
        if not key or not callable(comparator):
            self.logger.error("Custom sort needs a key and a callable comparator")
            return None

        def compare(a: Hashable, b: Hashable) -> int:
            value_a, value_b = self._raw(a, key), self._raw(b, key)
            if value_a is None or value_b is None:
                self.logger.warning(f"Missing attribute {key} in one or both items being compared")
                return 0
            try:
                result = comparator(value_a, value_b)
                return (result > 0) - (result < 0)
            except Exception as e:
                self.logger.error(f"Error in custom comparator: {e}")
                return 0

        ordered = sorted(list(ids), key=functools.cmp_to_key(compare))
        self.logger.debug(f"Custom sort by {key} over {len(ordered)} items")
        return ordered

    def shuffle(self, ids: Iterable[Hashable], rng: Optional[random.Random] = None) -> List[Hashable]:
        """Fisher-Yates shuffle. Clears the recorded sort criteria."""
        rng = rng or random.Random()
        items = list(ids)
        for i in range(len(items) - 1, 0, -1):
            j = rng.randint(0, i)
            items[i], items[j] = items[j], items[i]

        self.state.sort = []
        self.logger.info(f"Shuffled {len(items)} items")
        return items

    def order(self, ids: Iterable[Hashable]) -> List[Hashable]:
        """Apply the recorded criteria, or keep the given order if there are none."""
        ids = list(ids)
        if not self.state.sort:
            return ids
        return self._sorted(ids, self.state.sort)

    def clear(self) -> None:
        self.state.sort = []
