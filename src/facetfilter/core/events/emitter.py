"""
Event Emitter for facetfilter

Synchronous publish/subscribe. Observers run in subscription order on the
caller's stack, after the state mutation that caused the event has
completed, so every observer sees the settled state.
"""

import logging
import weakref
from collections import defaultdict, deque
from typing import Any, Callable, Dict, List, Optional, Union

from facetfilter.core.events.types import EventType


logger = logging.getLogger(__name__)

WILDCARDS = ('*', 'all')

Observer = Callable[[EventType], Any]


class EventEmitter:
    """
    Delivers engine events to observers.

    Observers subscribe by event class or class name, or to every event
    with ``'*'``/``'all'``. An observer that raises is counted and logged;
    the remaining observers still run. Bound methods may be held weakly so
    a discarded view does not keep receiving events.
    """

    def __init__(self, max_history: int = 1000, enable_history: bool = True):
        """
        Args:
            max_history: Number of recent events kept for inspection
            enable_history: Keep no history at all when False
        """
        self.max_history = max_history
        self.enable_history = enable_history

        self._observers: Dict[str, List[Any]] = defaultdict(list)
        self._wildcard_observers: List[Any] = []
        self._event_history: deque = deque(maxlen=max_history if enable_history else 0)
        self._stats = {'events_emitted': 0, 'observers_notified': 0, 'observer_errors': 0}

    @staticmethod
    def _type_name(event_type: Union[str, type]) -> str:
        return event_type.__name__ if isinstance(event_type, type) else str(event_type)

    def _bucket(self, event_type: Union[str, type]) -> List[Any]:
        name = self._type_name(event_type)
        return self._wildcard_observers if name in WILDCARDS else self._observers[name]

    @staticmethod
    def _resolve(entry: Any) -> Optional[Observer]:
        return entry() if isinstance(entry, weakref.ref) else entry

    def subscribe(self, event_type: Union[str, type], observer: Observer, weak: bool = False) -> bool:
        """
        Register an observer.

        Returns:
            False if the observer is not callable
        """
        if not callable(observer):
            logger.error(f"Cannot subscribe non-callable observer {observer!r}")
            return False

        entry: Any = observer
        if weak:
            entry = weakref.WeakMethod(observer) if hasattr(observer, '__self__') else weakref.ref(observer)

        self._bucket(event_type).append(entry)
        logger.debug(f"Subscribed observer to {self._type_name(event_type)} events")
        return True

    def unsubscribe(self, event_type: Union[str, type], observer: Observer) -> bool:
        """Remove an observer; True if it was subscribed."""
        bucket = self._bucket(event_type)
        kept = [entry for entry in bucket if self._resolve(entry) != observer]
        removed = len(kept) != len(bucket)
        bucket[:] = kept
        return removed

    def emit(self, event: EventType) -> int:
        """
        Deliver an event to its type's observers, then to wildcard observers.

        Returns:
            Number of observers that handled the event without raising
        """
        self._stats['events_emitted'] += 1
        if self.enable_history:
            self._event_history.append(event)

        entries = list(self._observers.get(event.event_type, ())) + list(self._wildcard_observers)
        delivered = 0
        for entry in entries:
            observer = self._resolve(entry)
            if observer is None:
                continue  # collected
            if self._notify(observer, event):
                delivered += 1
        return delivered

    def _notify(self, observer: Observer, event: EventType) -> bool:
        try:
            observer(event)
        except Exception as e:
            self._stats['observer_errors'] += 1
            logger.warning(f"Observer error for {event.event_type}: {e}")
            return False
        self._stats['observers_notified'] += 1
        return True

    def get_observers(self, event_type: Optional[str] = None) -> Dict[str, int]:
        """Observer counts per event type, plus a ``wildcard`` entry."""
        if event_type:
            counts = {event_type: len(self._observers.get(event_type, ()))}
        else:
            counts = {name: len(entries) for name, entries in self._observers.items()}
        counts['wildcard'] = len(self._wildcard_observers)
        return counts

    def get_event_history(self, event_type: Optional[str] = None, limit: Optional[int] = None) -> List[EventType]:
        """Recent events, oldest first, optionally of one type and capped at ``limit``."""
        events = [e for e in self._event_history if not event_type or e.event_type == event_type]
        return events[-limit:] if limit else events

    def get_statistics(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = dict(self._stats)
        stats.update(
            total_observers=sum(len(entries) for entries in self._observers.values()),
            wildcard_observers=len(self._wildcard_observers),
            event_types=list(self._observers),
            history_size=len(self._event_history),
            history_enabled=self.enable_history,
        )
        return stats

    def clear_history(self) -> None:
        self._event_history.clear()

    def clear_observers(self) -> None:
        self._observers.clear()
        self._wildcard_observers.clear()
