"""
State Management

The StateStore aggregate and its snapshot and preset persistence.
"""

from facetfilter.core.state.store import (
    MATCH_ALL,
    DateRangeState,
    FilterGroup,
    FilterMode,
    FilterState,
    FilterToken,
    PaginationState,
    RangeState,
    SearchState,
    SortCriterion,
    StateStore,
)
from facetfilter.core.state.persistence import (
    Preset,
    PresetStore,
    Snapshot,
    SnapshotStore,
)

__all__ = [
    'MATCH_ALL',
    'DateRangeState',
    'FilterGroup',
    'FilterMode',
    'FilterState',
    'FilterToken',
    'PaginationState',
    'RangeState',
    'SearchState',
    'SortCriterion',
    'StateStore',
    'Preset',
    'PresetStore',
    'Snapshot',
    'SnapshotStore',
]
