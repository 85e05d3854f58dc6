"""
Search Filter

Case-insensitive containment search over the concatenation of configured
item attributes. Every word of the query must appear somewhere in the text.
"""

import re
from typing import Any, Iterable, List, Optional

from facetfilter.accessor import AttributeAccessor
from facetfilter.core.state.store import StateStore
from facetfilter.filters.base import Filter, FilterResult


_WHITESPACE = re.compile(r'\s+')


def normalize_query(query: Any) -> str:
    """Lowercase, trim, and collapse internal whitespace."""
    if query is None:
        return ""
    return _WHITESPACE.sub(' ', str(query)).strip().lower()


class SearchIndex(Filter):
    """
    Free-text search facet.

    ``SearchState.query`` is the latest normalized input;
    ``SearchState.applied_query`` is the query the matcher was last built
    from and the one items are evaluated against.
    """

    def __init__(self, state: StateStore):
        super().__init__(state)
        self._matcher_source: Optional[str] = None
        self._words: List[str] = []

    @property
    def name(self) -> str:
        return "search"

    @property
    def description(self) -> str:
        if not self.state.search.applied_query:
            return "No search"
        return f"'{self.state.search.applied_query}' in {', '.join(self.state.search.keys)}"

    @property
    def is_active(self) -> bool:
        return bool(self.state.search.applied_query)

    def search(self, query: Any) -> bool:
        """
        Update the query.

        An empty query clears the search. A query shorter than the minimum
        length is recorded but leaves the previous matcher in place.

        Returns:
            True if the matcher was rebuilt (or cleared)
        """
        search = self.state.search
        normalized = normalize_query(query)
        search.query = normalized

        if not normalized:
            self.clear()
            return True

        if len(normalized) < search.min_length:
            self.logger.debug(f"Query '{normalized}' shorter than {search.min_length}, keeping previous results")
            return False

        search.applied_query = normalized
        self.logger.debug(f"Search applied: '{normalized}'")
        return True

    def clear(self) -> None:
        self.state.search.query = ""
        self.state.search.applied_query = ""

    def set_keys(self, keys: Iterable[str]) -> bool:
        """Replace the searched attributes. An empty list is rejected."""
        keys = [str(k) for k in keys if k]
        if not keys:
            self.logger.warning("Search keys must be a non-empty list")
            return False
        self.state.search.keys = keys
        return True

    def _matcher_words(self) -> List[str]:
        # rebuilt whenever the applied query changes, including wholesale state replacement
        applied = self.state.search.applied_query
        if applied != self._matcher_source:
            self._matcher_source = applied
            self._words = normalize_query(applied).split()
        return self._words

    def evaluate(self, text: Any) -> bool:
        """True if every query word occurs in the text."""
        words = self._matcher_words()
        if not words:
            return True
        haystack = str(text or "").lower()
        return all(word in haystack for word in words)

    def searchable_text(self, item_id: Any, accessor: AttributeAccessor) -> str:
        values = (accessor.get_attribute(item_id, key) for key in self.state.search.keys)
        return " ".join(value for value in values if value)

    def apply(self, item_id: Any, accessor: AttributeAccessor) -> FilterResult:
        passed = self.evaluate(self.searchable_text(item_id, accessor))
        return FilterResult(
            passed=passed,
            reason=f"{'Matches' if passed else 'Does not match'} '{self.state.search.applied_query}'",
        )
