"""
Event Types for facetfilter

Defines the events an engine emits after its state changes, so a rendering
collaborator or history sink can react without polling.
"""

import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union


@dataclass
class BaseEvent:
    """
    Base class for all engine events.

    Every event carries a creation time, a short id and the id of the
    session (engine run) that produced it.
    """
    timestamp: float = field(default_factory=time.time)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def datetime(self) -> datetime:
        """Local-time view of ``timestamp``."""
        return datetime.fromtimestamp(self.timestamp)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Flat, JSON-friendly form including the event type name."""
        data = asdict(self)
        data['event_type'] = self.event_type
        data['datetime'] = self.datetime.isoformat()
        return data
@dataclass
class FiltersChangedEvent(BaseEvent):
    """Emitted when the active filter tokens, groups or modes change."""
    active_filters: List[str] = field(default_factory=list)
    mode: str = "OR"
    group_mode: str = "AND"
    group_ids: List[str] = field(default_factory=list)


@dataclass
class FilterAppliedEvent(BaseEvent):
    """
    Emitted after every recompute.

    Carries the size of the collection before and after the predicates ran.
    """
    items_before: int = 0
    items_after: int = 0
    facets: List[str] = field(default_factory=list)
    processing_time: float = 0.0

    @property
    def items_filtered(self) -> int:
        return self.items_before - self.items_after

    @property
    def filter_percentage(self) -> float:
        """Calculate percentage of items filtered out."""
        if self.items_before > 0:
            return (self.items_filtered / self.items_before) * 100
        return 0.0


@dataclass
class SearchAppliedEvent(BaseEvent):
    """Emitted when a search call finishes, whether or not it rebuilt the matcher."""
    query: str = ""
    applied: bool = False


@dataclass
class SortAppliedEvent(BaseEvent):
    """Emitted when the ordering changes."""
    criteria: List[Dict[str, str]] = field(default_factory=list)
    shuffled: bool = False
    custom: bool = False


@dataclass
class PageChangedEvent(BaseEvent):
    """Emitted when the pagination cursor moves."""
    current_page: int = 1
    total_pages: int = 1
    items_per_page: int = 10


@dataclass
class StateChangedEvent(BaseEvent):
    """
    Emitted after each recompute with the serialized parameter map.

    History sinks push `params` (or `query_string`) to their navigation stack.
    """
    params: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    visible_count: int = 0
    total_count: int = 0


@dataclass
class StateRestoredEvent(BaseEvent):
    """Emitted when state is loaded from parameters, a snapshot or a preset."""
    source: str = ""  # 'params', 'snapshot', 'preset', 'import'
    name: Optional[str] = None


@dataclass
class ErrorEvent(BaseEvent):
    """Emitted when an operation degraded to a safe default after an error."""
    error_type: str = ""
    error_message: str = ""
    operation: str = ""
    recoverable: bool = True
    error_context: Dict[str, Any] = field(default_factory=dict)


EventType = Union[
    BaseEvent,
    FiltersChangedEvent,
    FilterAppliedEvent,
    SearchAppliedEvent,
    SortAppliedEvent,
    PageChangedEvent,
    StateChangedEvent,
    StateRestoredEvent,
    ErrorEvent,
]
