"""
Facet filters.

Each facet implements the Filter interface and reads its selection from a
shared StateStore; FilterChain ANDs them into the visible-set decision.
"""

from facetfilter.filters.base import Filter, FilterChain, FilterResult
from facetfilter.filters.category import FilterEngine
from facetfilter.filters.range import RangeIndex
from facetfilter.filters.date import DateRangeFilter
from facetfilter.filters.search import SearchIndex

__all__ = [
    'Filter',
    'FilterChain',
    'FilterResult',
    'FilterEngine',
    'RangeIndex',
    'DateRangeFilter',
    'SearchIndex',
]
