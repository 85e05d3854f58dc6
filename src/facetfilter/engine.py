"""
Facet Engine

Facade over one StateStore and the facets that read it. Every mutator
updates the state synchronously, recomputes the visible set once and then
emits events, so observers always see the latest decision.
"""

import logging
import random
import time
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Set, Union

from facetfilter.accessor import AttributeAccessor
from facetfilter.codec import URLCodec, from_query_string, to_query_string
from facetfilter.core.config.models import EngineConfig
from facetfilter.core.events import (
    ErrorEvent, EventEmitter, FilterAppliedEvent, FiltersChangedEvent, PageChangedEvent,
    SearchAppliedEvent, SortAppliedEvent, StateChangedEvent, StateRestoredEvent,
)
from facetfilter.core.exceptions import SnapshotError
from facetfilter.core.state.persistence import PresetStore, SnapshotStore
from facetfilter.core.state.store import FilterMode, FilterToken, StateStore, sorted_tokens
from facetfilter.filters.base import FilterChain
from facetfilter.filters.category import FilterEngine
from facetfilter.filters.date import DateRangeFilter
from facetfilter.filters.range import RangeIndex
from facetfilter.filters.search import SearchIndex
from facetfilter.pagination import Paginator
from facetfilter.sorting import SortEngine


logger = logging.getLogger(__name__)


class FacetEngine:
    """
    Maintains the visible, ordered and paged subset of a collection.

    Args:
        accessor: Source of item categories and attributes
        item_ids: Ids of the items to manage, in their natural order
        config: Engine configuration (defaults if omitted)
        emitter: Event emitter to publish on (a private one if omitted)
    """

    def __init__(
        self,
        accessor: AttributeAccessor,
        item_ids: Iterable[Hashable],
        config: Optional[EngineConfig] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.config = config or EngineConfig()
        self.accessor = accessor
        self.events = emitter or EventEmitter()
        self.codec = URLCodec(self.config)

        self._item_ids: List[Hashable] = list(item_ids)
        self._base_order: List[Hashable] = list(self._item_ids)

        self.state = StateStore.from_config(self.config)
        self.filters = FilterEngine(self.state, exclusive_types=self.config.filters.exclusive_types)
        self.ranges = RangeIndex(self.state, accessor, self._item_ids, self.config.ranges)
        self.dates = DateRangeFilter(self.state, accessor, self._item_ids)
        self.search_index = SearchIndex(self.state)
        self.sorter = SortEngine(self.state, accessor)
        self.paginator = Paginator(self.state)
        self.chain = FilterChain(
            [self.filters, self.ranges, self.dates, self.search_index],
            composition=FilterMode.AND,
        )

        self.snapshots = SnapshotStore(
            self.config.persistence.snapshot_path, self.config.persistence.state_expiry
        )
        self.presets = PresetStore(self.config.persistence.preset_dir)

        self.visible_ids: Set[Hashable] = set()
        self.ordered_ids: List[Hashable] = []
        self.recompute()

    # Derived views

    @property
    def item_ids(self) -> List[Hashable]:
        return list(self._item_ids)

    @property
    def page_ids(self) -> List[Hashable]:
        return self.paginator.page_slice(self.ordered_ids)

    def counts(self) -> Dict[str, int]:
        return {"total": len(self._item_ids), "visible": len(self.visible_ids)}

    def serialize(self) -> Dict[str, str]:
        return self.codec.serialize(self.state)

    def query_string(self) -> str:
        return to_query_string(self.serialize())

    # Recompute

    def recompute(self) -> Set[Hashable]:
        """
        Re-evaluate every item, order the visible ones and clamp pagination.

        Returns:
            The visible id set
        """
        start_time = time.time()

        visible = [
            item_id for item_id in self._base_order
            if self.chain.apply(item_id, self.accessor).passed
        ]
        self.visible_ids = set(visible)
        self.ordered_ids = self.sorter.order(visible)
        self.paginator.update(len(visible))

        elapsed = time.time() - start_time
        logger.debug(f"Recomputed {len(visible)}/{len(self._item_ids)} visible in {elapsed:.4f}s")

        self.events.emit(FilterAppliedEvent(
            items_before=len(self._item_ids),
            items_after=len(visible),
            facets=[f.name for f in self.chain.active_filters()],
            processing_time=elapsed,
        ))
        params = self.serialize()
        self.events.emit(StateChangedEvent(
            params=params,
            query_string=to_query_string(params),
            visible_count=len(visible),
            total_count=len(self._item_ids),
        ))
        return self.visible_ids

    def _filters_changed(self) -> None:
        filters = self.state.filters
        self.recompute()
        self.events.emit(FiltersChangedEvent(
            active_filters=[str(t) for t in sorted_tokens(filters.active)],
            mode=filters.mode.value,
            group_mode=filters.group_mode.value,
            group_ids=list(filters.groups),
        ))

    def set_items(self, item_ids: Iterable[Hashable], accessor: Optional[AttributeAccessor] = None) -> None:
        """Replace the managed collection and recompute."""
        if accessor is not None:
            self.accessor = accessor
            self.sorter.accessor = accessor
        self._item_ids = list(item_ids)
        self._base_order = list(self._item_ids)
        self.ranges.set_items(self._item_ids, accessor)
        self.dates.set_items(self._item_ids, accessor)
        self.recompute()

    # Category filters

    def add_filter(self, token: Union[str, FilterToken]) -> None:
        self.filters.add_filter(token)
        self._filters_changed()

    def remove_filter(self, token: Union[str, FilterToken]) -> None:
        self.filters.remove_filter(token)
        self._filters_changed()

    def toggle_filter(self, token: Union[str, FilterToken], exclusive_types: Optional[Iterable[str]] = None) -> bool:
        active = self.filters.toggle(token, exclusive_types)
        self._filters_changed()
        return active

    def set_filter_mode(self, mode: Union[str, bool, FilterMode]) -> bool:
        if not self.filters.set_mode(mode):
            return False
        self._filters_changed()
        return True

    def add_filter_group(self, group_id: str, tokens: Any, operator: Union[str, FilterMode] = "OR") -> bool:
        if not self.filters.add_group(group_id, tokens, operator):
            return False
        self._filters_changed()
        return True

    def remove_filter_group(self, group_id: str) -> bool:
        if not self.filters.remove_group(group_id):
            return False
        self._filters_changed()
        return True

    def set_group_mode(self, mode: Union[str, bool, FilterMode]) -> bool:
        if not self.filters.set_group_mode(mode):
            return False
        self._filters_changed()
        return True

    def clear_filters(self) -> None:
        self.filters.reset()
        self._filters_changed()

    # Ranges

    def add_range(self, key: str, range_type: str = "number", min_value: Any = None,
                  max_value: Any = None, step: float = 1) -> None:
        self.ranges.add_range(key, range_type, min_value, max_value, step)
        self.recompute()

    def set_range(self, key: str, lo: Any, hi: Any) -> bool:
        if not self.ranges.set_range(key, lo, hi):
            return False
        self.recompute()
        return True

    def remove_range(self, key: str) -> bool:
        if not self.ranges.remove_range(key):
            return False
        self.recompute()
        return True

    def histogram(self, key: str, bins: Optional[int] = None) -> Dict[str, Any]:
        return self.ranges.histogram(key, bins)

    def add_date_range(self, key: str, start: Any = None, end: Any = None) -> bool:
        if self.dates.add_date_range(key, start, end) is None:
            return False
        self.recompute()
        return True

    def set_date_range(self, key: str, start: Any, end: Any) -> bool:
        if not self.dates.set_date_range(key, start, end):
            return False
        self.recompute()
        return True

    def remove_date_range(self, key: str) -> bool:
        if not self.dates.remove_date_range(key):
            return False
        self.recompute()
        return True

    # Search

    def search(self, query: Any) -> bool:
        """
        Run a search.

        A query below the minimum length does not recompute, leaving the
        previous visible set in place.
        """
        applied = self.search_index.search(query)
        if applied:
            self.recompute()
        self.events.emit(SearchAppliedEvent(query=self.state.search.query, applied=applied))
        return applied

    def clear_search(self) -> None:
        self.search_index.clear()
        self.recompute()

    # Sorting

    def sort(self, key: str, direction: str = "asc") -> bool:
        return self.sort_multiple([{"key": key, "direction": direction}])

    def sort_multiple(self, criteria: Iterable[Any]) -> bool:
        ordered = self.sorter.sort_multiple(self._item_ids, criteria)
        if ordered is None:
            return False
        self._base_order = ordered
        self.recompute()
        self.events.emit(SortAppliedEvent(
            criteria=[{"key": c.key, "direction": c.direction} for c in self.state.sort]
        ))
        return True

    def sort_with_comparator(self, key: str, comparator: Callable[[Any, Any], Any]) -> bool:
        ordered = self.sorter.sort_with_comparator(self._item_ids, key, comparator)
        if ordered is None:
            return False
        self.sorter.clear()
        self._base_order = ordered
        self.recompute()
        self.events.emit(SortAppliedEvent(custom=True))
        return True

    def shuffle(self, rng: Optional[random.Random] = None) -> None:
        self._base_order = self.sorter.shuffle(self._item_ids, rng)
        self.recompute()
        self.events.emit(SortAppliedEvent(shuffled=True))

    def clear_sort(self) -> None:
        self.sorter.clear()
        self._base_order = list(self._item_ids)
        self.recompute()

    # Pagination

    def _page_changed(self) -> None:
        pagination = self.state.pagination
        self.events.emit(PageChangedEvent(
            current_page=pagination.current_page,
            total_pages=pagination.total_pages,
            items_per_page=pagination.items_per_page,
        ))
        params = self.serialize()
        self.events.emit(StateChangedEvent(
            params=params,
            query_string=to_query_string(params),
            visible_count=len(self.visible_ids),
            total_count=len(self._item_ids),
        ))

    def go_to_page(self, page: Any) -> bool:
        if not self.paginator.go_to_page(page):
            return False
        self._page_changed()
        return True

    def next_page(self) -> bool:
        if not self.paginator.next_page():
            return False
        self._page_changed()
        return True

    def previous_page(self) -> bool:
        if not self.paginator.previous_page():
            return False
        self._page_changed()
        return True

    def set_items_per_page(self, count: Any) -> bool:
        if not self.paginator.set_items_per_page(count):
            return False
        self._page_changed()
        return True

    # State import and export

    def _restored(self, source: str, name: Optional[str] = None) -> None:
        self._base_order = list(self._item_ids)
        self.recompute()
        self.events.emit(StateRestoredEvent(source=source, name=name))

    def load_params(self, params: Any) -> None:
        """Replace the state with one decoded from a parameter map."""
        self.state.replace(self.codec.deserialize(params, template=self.state))
        self._restored("params")

    def load_query_string(self, query_string: str) -> None:
        self.load_params(from_query_string(query_string))

    def reset(self) -> None:
        """Restore defaults, including the natural item order."""
        self.state.reset(self.config)
        self._restored("reset")

    def export_state(self) -> Dict[str, Any]:
        return self.state.export()

    def import_state(self, data: Dict[str, Any]) -> bool:
        try:
            self.state.import_state(data, self.config)
        except ValueError as e:
            logger.error(f"Could not import state: {e}")
            self.events.emit(ErrorEvent(
                error_type=type(e).__name__, error_message=str(e), operation="import_state"
            ))
            return False
        self._restored("import")
        return True

    def snapshot(self) -> bool:
        """Save a snapshot of the current state."""
        try:
            self.snapshots.save(self.state)
        except SnapshotError as e:
            logger.error(f"Could not save snapshot: {e.message}")
            self.events.emit(ErrorEvent(
                error_type=type(e).__name__, error_message=e.message,
                operation="snapshot", error_context=e.context.to_dict(),
            ))
            return False
        return True

    def restore_snapshot(self) -> bool:
        """
        Restore the saved snapshot.

        Returns:
            False if there is no snapshot, it expired, or it is corrupt
        """
        try:
            snapshot = self.snapshots.load()
        except SnapshotError as e:
            logger.error(f"Could not restore snapshot: {e.message}")
            self.events.emit(ErrorEvent(
                error_type=type(e).__name__, error_message=e.message,
                operation="restore_snapshot", error_context=e.context.to_dict(),
            ))
            return False

        if snapshot is None:
            return False

        snapshot.apply_to(self.state)
        self._restored("snapshot")
        return True

    def save_preset(self, name: str) -> bool:
        try:
            self.presets.save(name, self.state)
        except SnapshotError as e:
            logger.error(f"Could not save preset {name}: {e.message}")
            return False
        return True

    def load_preset(self, name: str) -> bool:
        try:
            preset = self.presets.load(name)
        except SnapshotError as e:
            logger.error(f"Could not load preset {name}: {e.message}")
            return False
        preset.apply_to(self.state)
        self._restored("preset", name)
        return True
