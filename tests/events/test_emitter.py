"""
Tests for the facetfilter EventEmitter

Covers observer management, wildcard subscriptions, error isolation and
event history.
"""

import gc

import pytest
from unittest.mock import Mock

from facetfilter.core.events.emitter import EventEmitter
from facetfilter.core.events.types import FilterAppliedEvent, PageChangedEvent, StateChangedEvent


class TestEventEmitterBasic:
    """Test suite for basic EventEmitter functionality."""

    def test_emitter_initialization(self):
        emitter = EventEmitter()
        assert emitter.max_history == 1000
        assert emitter.enable_history is True
        assert len(emitter._observers) == 0
        assert len(emitter._wildcard_observers) == 0
        assert emitter._stats['events_emitted'] == 0

    def test_subscribe_observer(self):
        emitter = EventEmitter()
        observer = Mock()

        assert emitter.subscribe('StateChangedEvent', observer) is True
        assert emitter.get_observers('StateChangedEvent')['StateChangedEvent'] == 1

    def test_subscribe_by_class(self):
        emitter = EventEmitter()
        observer = Mock()
        emitter.subscribe(StateChangedEvent, observer)

        event = StateChangedEvent(params={'category': 'tech'})
        assert emitter.emit(event) == 1
        observer.assert_called_once_with(event)

    def test_subscribe_non_callable(self):
        assert EventEmitter().subscribe('StateChangedEvent', "not callable") is False

    def test_only_matching_type_notified(self):
        emitter = EventEmitter()
        page_observer = Mock()
        emitter.subscribe(PageChangedEvent, page_observer)

        emitter.emit(StateChangedEvent())
        page_observer.assert_not_called()

    def test_wildcard_observers(self):
        emitter = EventEmitter()
        star, everything = Mock(), Mock()
        emitter.subscribe('*', star)
        emitter.subscribe('all', everything)

        emitter.emit(PageChangedEvent())
        emitter.emit(StateChangedEvent())
        assert star.call_count == 2
        assert everything.call_count == 2

    def test_subscription_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.subscribe(StateChangedEvent, lambda e: calls.append('first'))
        emitter.subscribe(StateChangedEvent, lambda e: calls.append('second'))
        emitter.subscribe('*', lambda e: calls.append('wildcard'))

        emitter.emit(StateChangedEvent())
        assert calls == ['first', 'second', 'wildcard']

    def test_unsubscribe(self):
        emitter = EventEmitter()
        observer = Mock()
        emitter.subscribe(StateChangedEvent, observer)

        assert emitter.unsubscribe(StateChangedEvent, observer) is True
        assert emitter.unsubscribe(StateChangedEvent, observer) is False
        emitter.emit(StateChangedEvent())
        observer.assert_not_called()

    def test_unsubscribe_wildcard(self):
        emitter = EventEmitter()
        observer = Mock()
        emitter.subscribe('*', observer)
        assert emitter.unsubscribe('*', observer) is True
        assert emitter.get_observers()['wildcard'] == 0


class TestObserverErrors:
    """Test observer error isolation."""

    def test_failing_observer_does_not_stop_others(self):
        emitter = EventEmitter()
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        emitter.subscribe(StateChangedEvent, failing)
        emitter.subscribe(StateChangedEvent, healthy)

        assert emitter.emit(StateChangedEvent()) == 1
        healthy.assert_called_once()

        stats = emitter.get_statistics()
        assert stats['observer_errors'] == 1
        assert stats['observers_notified'] == 1


class TestWeakObservers:
    """Test weak references to observers."""

    def test_weak_bound_method_expires(self):
        class View:
            def __init__(self):
                self.seen = []

            def render(self, event):
                self.seen.append(event)

        emitter = EventEmitter()
        view = View()
        emitter.subscribe(StateChangedEvent, view.render, weak=True)

        assert emitter.emit(StateChangedEvent()) == 1
        assert len(view.seen) == 1

        del view
        gc.collect()
        assert emitter.emit(StateChangedEvent()) == 0

    def test_weak_unsubscribe(self):
        class View:
            def render(self, event):
                pass

        emitter = EventEmitter()
        view = View()
        emitter.subscribe(StateChangedEvent, view.render, weak=True)
        assert emitter.unsubscribe(StateChangedEvent, view.render) is True


class TestEventHistory:
    """Test event history."""

    def test_history_by_type_and_limit(self):
        emitter = EventEmitter()
        for page in range(1, 4):
            emitter.emit(PageChangedEvent(current_page=page))
        emitter.emit(StateChangedEvent())

        assert len(emitter.get_event_history()) == 4
        pages = emitter.get_event_history('PageChangedEvent', limit=2)
        assert [e.current_page for e in pages] == [2, 3]

    def test_max_history(self):
        emitter = EventEmitter(max_history=2)
        for _ in range(5):
            emitter.emit(StateChangedEvent())
        assert len(emitter.get_event_history()) == 2

    def test_history_disabled(self):
        emitter = EventEmitter(enable_history=False)
        emitter.emit(StateChangedEvent())
        assert emitter.get_event_history() == []
        assert emitter.get_statistics()['history_size'] == 0

    def test_clear(self):
        emitter = EventEmitter()
        emitter.subscribe(StateChangedEvent, Mock())
        emitter.emit(FilterAppliedEvent())

        emitter.clear_history()
        emitter.clear_observers()
        assert emitter.get_event_history() == []
        assert emitter.get_statistics()['total_observers'] == 0
