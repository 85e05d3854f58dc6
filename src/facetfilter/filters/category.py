"""
Category Filter

Discrete ``type:value`` token filtering with named groups and two
composition modes: the filter mode combines active tokens when no groups
exist, the group mode combines group results when they do.
"""

from typing import Any, Iterable, List, Optional, Set, Union

from facetfilter.accessor import AttributeAccessor
from facetfilter.core.state.store import (
    MATCH_ALL, FilterGroup, FilterMode, FilterToken, StateStore, sorted_tokens,
)
from facetfilter.filters.base import Filter, FilterResult


TokenLike = Union[str, FilterToken]

_TOKEN_COLLECTIONS = (list, tuple, set, frozenset)


class FilterEngine(Filter):
    """
    Filter items by their category tokens.

    Mutators keep the active set normalized: it is either ``{*}`` or a set
    of concrete tokens, never empty and never a mix of both.
    """

    def __init__(self, state: StateStore, exclusive_types: Iterable[str] = ()):
        """
        Initialize the category filter.

        Args:
            state: Store holding the active tokens and groups
            exclusive_types: Token types that behave as single-select when toggled
        """
        super().__init__(state)
        self.exclusive_types: Set[str] = set(exclusive_types)

    @property
    def name(self) -> str:
        return "category"

    @property
    def description(self) -> str:
        filters = self.state.filters
        if filters.is_match_all:
            return "All categories"
        if filters.groups:
            parts = []
            for group in filters.groups.values():
                joiner = f" {group.operator.value} "
                parts.append("(" + joiner.join(str(t) for t in sorted_tokens(group.tokens)) + ")")
            return f" {filters.group_mode.value} ".join(parts)
        joiner = f" {filters.mode.value} "
        return joiner.join(str(t) for t in sorted_tokens(filters.active))

    @property
    def is_active(self) -> bool:
        return not self.state.filters.is_match_all

    @property
    def active(self) -> Set[FilterToken]:
        return set(self.state.filters.active)

    def add_filter(self, token: TokenLike) -> None:
        """Activate a token. Adding ``*`` resets the filters and clears groups."""
        token = FilterToken.of(token)
        filters = self.state.filters

        if token.is_match_all:
            self.reset()
            return

        filters.active.discard(MATCH_ALL)
        filters.active.add(token)
        self.logger.debug(f"Added filter {token}")

    def remove_filter(self, token: TokenLike) -> None:
        """Deactivate a token. Removing the last token restores ``{*}``."""
        token = FilterToken.of(token)
        filters = self.state.filters

        filters.active.discard(token)
        if not filters.active:
            filters.active.add(MATCH_ALL)
        self.logger.debug(f"Removed filter {token}")

    def toggle(self, token: TokenLike, exclusive_types: Optional[Iterable[str]] = None) -> bool:
        """
        Flip a token on or off.

        When the token is typed and either the filter mode is OR or its type
        is exclusive, other active tokens of the same type are deactivated
        first, which makes that type behave as a single-select group.

        Args:
            token: Token to flip
            exclusive_types: Exclusive types for this call (defaults to the
                engine's configured ones)

        Returns:
            True if the token is active afterwards
        """
        token = FilterToken.of(token)
        filters = self.state.filters

        if token.is_match_all:
            self.reset()
            return True

        filters.active.discard(MATCH_ALL)

        exclusive = self.exclusive_types if exclusive_types is None else set(exclusive_types)
        if token.is_typed and (filters.mode == FilterMode.OR or token.type in exclusive):
            siblings = {t for t in filters.active if t.type == token.type and t != token}
            filters.active -= siblings

        if token in filters.active:
            filters.active.discard(token)
            if not filters.active:
                filters.active.add(MATCH_ALL)
            self.logger.debug(f"Toggled {token} off")
            return False

        filters.active.add(token)
        self.logger.debug(f"Toggled {token} on")
        return True

    def set_mode(self, mode: Union[str, bool, FilterMode]) -> bool:
        """Set the mode that combines active tokens. Invalid modes are ignored."""
        coerced = FilterMode.coerce(mode)
        if coerced is None:
            self.logger.warning(f"Invalid filter mode {mode!r}, keeping {self.state.filters.mode.value}")
            return False
        self.state.filters.mode = coerced
        return True

    def set_group_mode(self, mode: Union[str, bool, FilterMode]) -> bool:
        """Set the mode that combines group results. Invalid modes are ignored."""
        coerced = FilterMode.coerce(mode)
        if coerced is None:
            self.logger.warning(f"Invalid group mode {mode!r}, keeping {self.state.filters.group_mode.value}")
            return False
        self.state.filters.group_mode = coerced
        return True

    def set_exclusive(self, types: Iterable[str], exclusive: bool = True) -> None:
        """Mark token types as exclusive (single-select) or multi-select."""
        types = set(types)
        if exclusive:
            self.exclusive_types |= types
        else:
            self.exclusive_types -= types

    def add_group(self, group_id: str, tokens: Any, operator: Union[str, FilterMode] = "OR") -> bool:
        """
        Define (or replace) a filter group.

        The group's tokens are merged into the active set so the groups take
        effect immediately.

        Returns:
            False if the tokens are not a collection; groups are left unchanged
        """
        if not isinstance(tokens, _TOKEN_COLLECTIONS):
            self.logger.error(f"Filter group {group_id!r} needs a list of tokens, got {type(tokens).__name__}")
            return False

        op = FilterMode.coerce(operator)
        if op is None:
            self.logger.warning(f"Invalid operator {operator!r} for group {group_id!r}, using OR")
            op = FilterMode.OR

        group_tokens = {FilterToken.of(t) for t in tokens}
        group_tokens.discard(MATCH_ALL)

        filters = self.state.filters
        filters.groups[str(group_id)] = FilterGroup(id=str(group_id), tokens=group_tokens, operator=op)

        filters.active.discard(MATCH_ALL)
        filters.active |= group_tokens
        if not filters.active:
            filters.active.add(MATCH_ALL)

        self.logger.debug(f"Added group {group_id} ({op.value}) with {len(group_tokens)} tokens")
        return True

    def remove_group(self, group_id: str) -> bool:
        """Remove a group and rebuild the active set from the remaining groups."""
        filters = self.state.filters
        if str(group_id) not in filters.groups:
            self.logger.warning(f"No filter group named {group_id!r}")
            return False

        del filters.groups[str(group_id)]

        remaining: Set[FilterToken] = set()
        for group in filters.groups.values():
            remaining |= group.tokens
        filters.active = remaining or {MATCH_ALL}

        self.logger.debug(f"Removed group {group_id}")
        return True

    def reset(self) -> None:
        """Back to ``{*}`` with no groups. Modes are kept."""
        self.state.filters.active = {MATCH_ALL}
        self.state.filters.groups.clear()
        self.logger.debug("Category filters reset")

    def active_by_type(self, token_type: str) -> List[str]:
        """Values of the active tokens with the given type, sorted."""
        return sorted(t.value for t in self.state.filters.active if t.type == token_type)

    def evaluate(self, categories: Iterable[TokenLike]) -> bool:
        """
        Decide whether an item with these categories is visible.

        ``*`` short-circuits to True and bypasses groups.
        """
        filters = self.state.filters
        if filters.is_match_all:
            return True

        item_tokens = {FilterToken.of(c) for c in categories}

        if filters.groups:
            group_results = (
                not group.tokens or group.operator.combine(t in item_tokens for t in group.tokens)
                for group in filters.groups.values()
            )
            return filters.group_mode.combine(group_results)

        return filters.mode.combine(t in item_tokens for t in filters.active)

    def apply(self, item_id: Any, accessor: AttributeAccessor) -> FilterResult:
        categories = accessor.get_categories(item_id)
        passed = self.evaluate(categories)
        return FilterResult(
            passed=passed,
            reason=f"Categories {'match' if passed else 'do not match'} {self.description}",
            metadata={"categories": sorted(categories)},
        )
