"""
Abstract Filter Base Classes

Defines the interface every facet implements and the chain that composes
facets into the visible-set decision. Facets return FilterResult objects
with the reason an item passed or failed.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from facetfilter.accessor import AttributeAccessor
from facetfilter.core.state.store import FilterMode, StateStore


@dataclass
class FilterResult:
    """
    Result of applying a facet to an item.

    Attributes:
        passed: Whether the item passed the facet
        reason: Human-readable reason for pass/fail
        metadata: Additional facet-specific metadata
        execution_time: Time taken to apply the facet (seconds)
        error: Error message if evaluation failed
    """
    passed: bool
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    execution_time: float = 0.0
    error: Optional[str] = None


@dataclass
class FilterStats:
    """Execution statistics for one facet."""
    total_executions: int = 0
    total_time: float = 0.0
    passed: int = 0

    def record_execution(self, execution_time: float, passed: bool) -> None:
        self.total_executions += 1
        self.total_time += execution_time
        if passed:
            self.passed += 1

    @property
    def avg_time(self) -> float:
        return self.total_time / self.total_executions if self.total_executions else 0.0


class Filter(ABC):
    """
    Abstract base class for all facets.

    A facet owns no items. It reads its selection from the StateStore it was
    given and asks an AttributeAccessor about each item.
    """

    def __init__(self, state: StateStore):
        """
        Initialize the facet.

        Args:
            state: Store holding the facet's selection
        """
        self.state = state
        self.stats = FilterStats()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Short name of the facet."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of the current selection."""
        pass

    @property
    def is_active(self) -> bool:
        """Whether the facet currently constrains anything."""
        return True

    @abstractmethod
    def apply(self, item_id: Any, accessor: AttributeAccessor) -> FilterResult:
        """
        Apply the facet to an item.

        Args:
            item_id: Opaque item handle
            accessor: Source of the item's categories and attributes

        Returns:
            FilterResult indicating whether the item passed
        """
        pass

    def __str__(self) -> str:
        return f"{self.name}: {self.description}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(active={self.is_active})"


class FilterChain:
    """
    Chains facets together with AND/OR logic.

    Inactive facets are skipped. Evaluation stops at the first failure in
    AND mode and at the first pass in OR mode.
    """

    def __init__(self, filters: List[Filter], composition: FilterMode = FilterMode.AND):
        """
        Initialize the filter chain.

        Args:
            filters: Facets to chain together
            composition: How to combine facet results (AND/OR)
        """
        self.filters = filters
        self.composition = composition
        self.logger = logging.getLogger(__name__)

    def active_filters(self) -> List[Filter]:
        return [f for f in self.filters if f.is_active]

    def apply(self, item_id: Any, accessor: AttributeAccessor) -> FilterResult:
        """
        Apply all active facets in the chain to an item.

        Returns:
            FilterResult indicating whether the item passed the chain
        """
        start_time = time.time()
        active = self.active_filters()

        if not active:
            return FilterResult(
                passed=True,
                reason="No active filters",
                execution_time=time.time() - start_time
            )

        results = []
        for filter_instance in active:
            facet_start = time.time()
            try:
                result = filter_instance.apply(item_id, accessor)
            except Exception as e:
                self.logger.error(f"Error applying filter {filter_instance.name} to {item_id!r}: {e}")
                result = FilterResult(
                    passed=False,
                    reason=f"Filter error: {e}",
                    error=str(e)
                )
            result.execution_time = time.time() - facet_start
            filter_instance.stats.record_execution(result.execution_time, result.passed)
            results.append((filter_instance, result))

            if self.composition == FilterMode.AND and not result.passed:
                return FilterResult(
                    passed=False,
                    reason=f"Failed {filter_instance.name}: {result.reason}",
                    metadata=self._summary(results, failed_filter=filter_instance.name),
                    execution_time=time.time() - start_time,
                    error=result.error
                )
            if self.composition == FilterMode.OR and result.passed:
                return FilterResult(
                    passed=True,
                    reason=f"Passed {filter_instance.name}: {result.reason}",
                    metadata=self._summary(results, passed_filter=filter_instance.name),
                    execution_time=time.time() - start_time
                )

        passed = self.composition == FilterMode.AND
        return FilterResult(
            passed=passed,
            reason="All filters passed" if passed else "All filters failed",
            metadata=self._summary(results),
            execution_time=time.time() - start_time
        )

    def _summary(self, results, **extra) -> Dict[str, Any]:
        return {
            "filter_chain": self.composition.value,
            "filters_executed": len(results),
            "total_filters": len(self.filters),
            "individual_results": [
                {"filter": f.name, "passed": r.passed, "reason": r.reason}
                for f, r in results
            ],
            **extra,
        }

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """Execution statistics for each facet in the chain."""
        return {
            f.name: {
                "total_executions": f.stats.total_executions,
                "passed": f.stats.passed,
                "total_time": f.stats.total_time,
                "avg_time": f.stats.avg_time,
            }
            for f in self.filters
        }

    def __len__(self) -> int:
        return len(self.filters)

    def __str__(self) -> str:
        filter_names = [f.name for f in self.filters]
        composition_str = " AND " if self.composition == FilterMode.AND else " OR "
        return f"FilterChain({composition_str.join(filter_names)})"
