"""
Tests for facetfilter event types.
"""

from datetime import datetime

import pytest

from facetfilter.core.events.types import (
    BaseEvent, ErrorEvent, FilterAppliedEvent, FiltersChangedEvent, SortAppliedEvent, StateChangedEvent,
)


class TestBaseEvent:
    """Test common event fields."""

    def test_identifiers(self):
        first, second = BaseEvent(), BaseEvent()
        assert len(first.event_id) == 12
        assert len(first.session_id) == 8
        assert first.event_id != second.event_id

    def test_event_type_is_class_name(self):
        assert StateChangedEvent().event_type == "StateChangedEvent"

    def test_datetime(self):
        event = BaseEvent(timestamp=0)
        assert event.datetime == datetime.fromtimestamp(0)

    def test_to_dict(self):
        event = FiltersChangedEvent(active_filters=["category:tech"], mode="AND")
        data = event.to_dict()
        assert data['event_type'] == "FiltersChangedEvent"
        assert data['active_filters'] == ["category:tech"]
        assert data['mode'] == "AND"
        assert data['group_ids'] == []
        assert 'datetime' in data


class TestFilterAppliedEvent:
    def test_filtered_counts(self):
        event = FilterAppliedEvent(items_before=8, items_after=2)
        assert event.items_filtered == 6
        assert event.filter_percentage == pytest.approx(75.0)

    def test_empty_collection(self):
        assert FilterAppliedEvent().filter_percentage == 0.0


class TestOtherEvents:
    def test_defaults(self):
        assert SortAppliedEvent().criteria == []
        assert StateChangedEvent().params == {}
        error = ErrorEvent(error_type="ValueError", operation="import_state")
        assert error.recoverable is True
        assert error.error_context == {}
