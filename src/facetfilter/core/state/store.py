"""
State Store

The canonical aggregate of everything that decides the visible set: active
filter tokens and groups, range and date range selections, search, sort
criteria and the pagination cursor. Facets read and mutate the store they
are given; there is no module-level state, so several engines can coexist
in one process.
"""

import copy
import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from facetfilter.core.config.models import EngineConfig
from facetfilter.utils import parse_date


logger = logging.getLogger(__name__)

_MISSING = object()


class FilterMode(Enum):
    """How to combine tokens, groups, or facets."""
    AND = "AND"  # All must pass
    OR = "OR"    # At least one must pass

    @classmethod
    def coerce(cls, value: Union[str, bool, "FilterMode", None]) -> Optional["FilterMode"]:
        """
        Interpret a user supplied mode.

        Accepts a FilterMode, "and"/"or" in any case, or a bool (True = AND).

        Returns:
            The FilterMode, or None if the value is not a mode
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.AND if value else cls.OR
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return None
        return None

    def combine(self, results: Iterable[bool]) -> bool:
        """all() for AND, any() for OR."""
        return all(results) if self is FilterMode.AND else any(results)


@dataclass(frozen=True)
class FilterToken:
    """
    A discrete filter selector, printed as ``type:value``.

    A string without a colon has an empty type (an untyped token). The
    match-all sentinel is ``MATCH_ALL`` and prints as ``*``.
    """
    type: str
    value: str

    @staticmethod
    @lru_cache(maxsize=4096)
    def parse(text: str) -> "FilterToken":
        text = text.strip()
        if text == "*":
            return MATCH_ALL
        if ":" in text:
            token_type, value = text.split(":", 1)
            return FilterToken(token_type, value)
        return FilterToken("", text)

    @classmethod
    def of(cls, token: Union[str, "FilterToken"]) -> "FilterToken":
        """Return the token itself, or parse its string form."""
        if isinstance(token, FilterToken):
            return token
        return cls.parse(str(token))

    @property
    def is_match_all(self) -> bool:
        return self == MATCH_ALL

    @property
    def is_typed(self) -> bool:
        return bool(self.type)

    def __str__(self) -> str:
        if not self.type:
            return self.value
        return f"{self.type}:{self.value}"


MATCH_ALL = FilterToken("", "*")


def sorted_tokens(tokens: Iterable[FilterToken]) -> List[FilterToken]:
    return sorted(tokens, key=lambda t: (t.type, t.value))


@dataclass
class FilterGroup:
    """Named collection of tokens combined by an intra-group operator."""
    id: str
    tokens: Set[FilterToken] = field(default_factory=set)
    operator: FilterMode = FilterMode.OR


@dataclass
class FilterState:
    """Active token set, groups and the two composition modes."""
    active: Set[FilterToken] = field(default_factory=lambda: {MATCH_ALL})
    mode: FilterMode = FilterMode.OR
    group_mode: FilterMode = FilterMode.AND
    groups: Dict[str, FilterGroup] = field(default_factory=dict)

    @property
    def is_match_all(self) -> bool:
        return not self.active or MATCH_ALL in self.active


@dataclass
class RangeState:
    """Bounds and current selection of one ranged attribute."""
    min: float
    max: float
    current_min: float
    current_max: float
    step: float = 1
    type: str = "number"  # 'number' or 'date' (POSIX timestamps)

    @property
    def is_full(self) -> bool:
        """True when the selection covers the whole bounded domain."""
        return self.current_min == self.min and self.current_max == self.max

    def clamp(self, lo: float, hi: float) -> None:
        """Set the selection, swapping a reversed pair and clamping into bounds."""
        if lo > hi:
            lo, hi = hi, lo
        self.current_min = min(max(lo, self.min), self.max)
        self.current_max = max(min(hi, self.max), self.min)


@dataclass
class DateRangeState:
    """Start and end of a date picker pair, timezone-aware."""
    start: datetime
    end: datetime


@dataclass
class SearchState:
    query: str = ""
    keys: List[str] = field(default_factory=lambda: ["title"])
    min_length: int = 2
    applied_query: str = ""


@dataclass
class SortCriterion:
    key: str
    direction: str = "asc"
    type: Optional[str] = None  # per-batch cache, never serialized


@dataclass
class PaginationState:
    current_page: int = 1
    items_per_page: int = 10
    total_pages: int = 1


@dataclass
class StateStore:
    """
    Aggregate of all facet state.

    Attributes:
        filters: Active tokens, groups and modes
        ranges: Numeric and date range selections by attribute key
        date_ranges: Date picker selections by attribute key
        search: Search query and keys
        sort: Recorded sort criteria, primary first
        pagination: Page cursor
    """
    filters: FilterState = field(default_factory=FilterState)
    ranges: Dict[str, RangeState] = field(default_factory=dict)
    date_ranges: Dict[str, DateRangeState] = field(default_factory=dict)
    search: SearchState = field(default_factory=SearchState)
    sort: List[SortCriterion] = field(default_factory=list)
    pagination: PaginationState = field(default_factory=PaginationState)

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "StateStore":
        """Create a store holding the defaults of a configuration."""
        config = config or EngineConfig()
        return cls(
            filters=FilterState(
                mode=FilterMode(config.filters.mode),
                group_mode=FilterMode(config.filters.group_mode),
            ),
            search=SearchState(
                keys=list(config.search.keys),
                min_length=config.search.min_length,
            ),
            pagination=PaginationState(items_per_page=config.pagination.items_per_page),
        )

    def reset(self, config: Optional[EngineConfig] = None) -> None:
        """Restore default state in place."""
        self.replace(StateStore.from_config(config))
        logger.debug("State reset to defaults")

    def replace(self, other: "StateStore") -> None:
        """Adopt a deep copy of another store's contents, keeping this object's identity."""
        other = copy.deepcopy(other)
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))

    def copy(self) -> "StateStore":
        return copy.deepcopy(self)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Read a field by dotted path.

        Path segments address dataclass attributes or mapping keys, for
        example ``pagination.current_page`` or ``ranges.price.current_max``.
        """
        target: Any = self
        for segment in path.split("."):
            target = self._step(target, segment)
            if target is _MISSING:
                return default
        return target

    def set(self, path: str, value: Any) -> bool:
        """
        Write a field by dotted path.

        Mode fields (``filters.mode``, ``filters.group_mode`` and group
        operators) accept anything ``FilterMode.coerce`` does.

        Returns:
            True if the path resolved and the value was written
        """
        *parents, last = path.split(".")
        target: Any = self
        for segment in parents:
            target = self._step(target, segment)
            if target is _MISSING:
                logger.warning(f"Cannot set unknown state path: {path}")
                return False

        if isinstance(target, dict):
            target[last] = value
        elif hasattr(target, "__dataclass_fields__") and last in target.__dataclass_fields__:
            if isinstance(getattr(target, last), FilterMode):
                mode = FilterMode.coerce(value)
                if mode is None:
                    logger.warning(f"Invalid mode for {path}: {value!r}")
                    return False
                value = mode
            setattr(target, last, value)
        else:
            logger.warning(f"Cannot set unknown state path: {path}")
            return False

        logger.debug(f"State {path} = {value!r}")
        return True

    @staticmethod
    def _step(target: Any, segment: str) -> Any:
        if isinstance(target, dict):
            return target.get(segment, _MISSING)
        if isinstance(target, list):
            try:
                return target[int(segment)]
            except (ValueError, IndexError):
                return _MISSING
        if hasattr(target, "__dataclass_fields__") and segment in target.__dataclass_fields__:
            return getattr(target, segment)
        return _MISSING

    def export(self) -> Dict[str, Any]:
        """Export the state as a plain JSON-safe dictionary."""
        return {
            "filters": {
                "active": [str(t) for t in sorted_tokens(self.filters.active)],
                "mode": self.filters.mode.value,
                "group_mode": self.filters.group_mode.value,
                "groups": {
                    group_id: {
                        "tokens": [str(t) for t in sorted_tokens(group.tokens)],
                        "operator": group.operator.value,
                    }
                    for group_id, group in self.filters.groups.items()
                },
            },
            "ranges": {
                key: {
                    "min": _finite_or_none(r.min),
                    "max": _finite_or_none(r.max),
                    "current_min": _finite_or_none(r.current_min),
                    "current_max": _finite_or_none(r.current_max),
                    "step": r.step,
                    "type": r.type,
                }
                for key, r in self.ranges.items()
            },
            "date_ranges": {
                key: {"start": d.start.isoformat(), "end": d.end.isoformat()}
                for key, d in self.date_ranges.items()
            },
            "search": {
                "query": self.search.query,
                "keys": list(self.search.keys),
                "min_length": self.search.min_length,
                "applied_query": self.search.applied_query,
            },
            "sort": [{"key": c.key, "direction": c.direction} for c in self.sort],
            "pagination": {
                "current_page": self.pagination.current_page,
                "items_per_page": self.pagination.items_per_page,
                "total_pages": self.pagination.total_pages,
            },
        }

    def import_state(self, data: Dict[str, Any], config: Optional[EngineConfig] = None) -> None:
        """
        Replace the state with one produced by ``export()``.

        Sections missing from ``data`` keep their defaults. A malformed
        section raises ValueError and leaves the store unchanged.
        """
        store = StateStore.from_config(config)
        try:
            filters = data.get("filters") or {}
            active = {FilterToken.parse(t) for t in filters.get("active", ["*"])}
            store.filters.active = active or {MATCH_ALL}
            store.filters.mode = FilterMode.coerce(filters.get("mode")) or store.filters.mode
            store.filters.group_mode = (
                FilterMode.coerce(filters.get("group_mode")) or store.filters.group_mode
            )
            for group_id, group in (filters.get("groups") or {}).items():
                store.filters.groups[str(group_id)] = FilterGroup(
                    id=str(group_id),
                    tokens={FilterToken.parse(t) for t in group.get("tokens", [])},
                    operator=FilterMode.coerce(group.get("operator")) or FilterMode.OR,
                )

            for key, r in (data.get("ranges") or {}).items():
                store.ranges[key] = RangeState(
                    min=_none_to(r.get("min"), -math.inf),
                    max=_none_to(r.get("max"), math.inf),
                    current_min=_none_to(r.get("current_min"), -math.inf),
                    current_max=_none_to(r.get("current_max"), math.inf),
                    step=r.get("step", 1),
                    type=r.get("type", "number"),
                )

            for key, d in (data.get("date_ranges") or {}).items():
                start, end = parse_date(d.get("start")), parse_date(d.get("end"))
                if start is None or end is None:
                    raise ValueError(f"invalid date range for {key}")
                store.date_ranges[key] = DateRangeState(start=start, end=end)

            search = data.get("search") or {}
            store.search.query = str(search.get("query", ""))
            store.search.applied_query = str(search.get("applied_query", store.search.query))
            if search.get("keys"):
                store.search.keys = [str(k) for k in search["keys"]]
            if "min_length" in search:
                store.search.min_length = int(search["min_length"])

            store.sort = [
                SortCriterion(key=str(c["key"]), direction=str(c.get("direction", "asc")).lower())
                for c in data.get("sort") or []
            ]

            pagination = data.get("pagination") or {}
            store.pagination.current_page = max(1, int(pagination.get("current_page", 1)))
            store.pagination.items_per_page = max(
                1, int(pagination.get("items_per_page", store.pagination.items_per_page))
            )
            store.pagination.total_pages = max(1, int(pagination.get("total_pages", 1)))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed state data: {e}") from e

        self.replace(store)
        logger.debug("State imported")


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _none_to(value: Optional[float], fallback: float) -> float:
    return fallback if value is None else float(value)
