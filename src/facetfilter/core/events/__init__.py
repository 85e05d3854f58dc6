"""
Event System for facetfilter

Observer pattern implementation that decouples the engine from rendering
collaborators and history sinks. Events are delivered synchronously after
each state mutation completes.
"""

from facetfilter.core.events.types import (
    BaseEvent,
    FiltersChangedEvent,
    FilterAppliedEvent,
    SearchAppliedEvent,
    SortAppliedEvent,
    PageChangedEvent,
    StateChangedEvent,
    StateRestoredEvent,
    ErrorEvent,
    EventType,
)

from facetfilter.core.events.emitter import EventEmitter

__all__ = [
    'BaseEvent',
    'FiltersChangedEvent',
    'FilterAppliedEvent',
    'SearchAppliedEvent',
    'SortAppliedEvent',
    'PageChangedEvent',
    'StateChangedEvent',
    'StateRestoredEvent',
    'ErrorEvent',
    'EventType',
    'EventEmitter',
]
