"""
Tests for FilterEngine functionality.

Covers token evaluation, filter groups, composition modes and the toggle
policy for exclusive token types.
"""

import pytest

from facetfilter.core.state.store import MATCH_ALL, FilterMode, FilterToken, StateStore
from facetfilter.filters.category import FilterEngine


def tokens(*names):
    return {FilterToken.parse(n) for n in names}


class TestFilterEvaluation:
    """Test evaluation of the active token set."""

    def test_default_matches_everything(self, state, accessor, item_ids):
        """The default {*} state passes every item."""
        engine = FilterEngine(state)
        assert all(engine.evaluate(accessor.get_categories(i)) for i in item_ids)
        assert engine.is_active is False

    def test_single_token_or_equivalence(self, accessor, item_ids):
        """With {t} in OR mode, evaluation equals membership of t."""
        for name in ("category:tech", "category:food", "price:low", "price:medium"):
            engine = FilterEngine(StateStore())
            engine.add_filter(name)
            for item_id in item_ids:
                categories = accessor.get_categories(item_id)
                assert engine.evaluate(categories) == (name in categories)

    def test_two_token_and_equivalence(self, accessor, item_ids):
        """With {t1, t2} in AND mode, evaluation equals membership of both."""
        engine = FilterEngine(StateStore())
        engine.set_mode("AND")
        engine.add_filter("category:tech")
        engine.add_filter("price:high")
        for item_id in item_ids:
            categories = accessor.get_categories(item_id)
            expected = "category:tech" in categories and "price:high" in categories
            assert engine.evaluate(categories) == expected

    def test_or_mode_matches_any(self, state):
        engine = FilterEngine(state)
        engine.add_filter("category:tech")
        engine.add_filter("category:food")
        assert engine.evaluate({"category:food"}) is True
        assert engine.evaluate({"category:toys"}) is False

    def test_evaluate_accepts_tokens(self, state):
        engine = FilterEngine(state)
        engine.add_filter(FilterToken("category", "tech"))
        assert engine.evaluate([FilterToken("category", "tech")]) is True

    def test_apply_uses_accessor(self, state, accessor):
        engine = FilterEngine(state)
        engine.add_filter("category:food")
        result = engine.apply("2", accessor)
        assert result.passed is True
        assert result.metadata["categories"] == ["category:food", "price:medium"]
        assert engine.apply("1", accessor).passed is False


class TestFilterMutators:
    """Test add/remove/reset policy."""

    def test_add_filter_removes_match_all(self, state):
        engine = FilterEngine(state)
        engine.add_filter("category:tech")
        assert state.filters.active == tokens("category:tech")

    def test_add_match_all_resets_and_clears_groups(self, state):
        engine = FilterEngine(state)
        engine.add_group("g1", ["category:tech"])
        engine.add_filter("*")
        assert state.filters.active == {MATCH_ALL}
        assert state.filters.groups == {}

    def test_remove_last_filter_restores_match_all(self, state):
        engine = FilterEngine(state)
        engine.add_filter("category:tech")
        engine.remove_filter("category:tech")
        assert state.filters.active == {MATCH_ALL}

    def test_remove_one_of_two(self, state):
        engine = FilterEngine(state)
        engine.add_filter("category:tech")
        engine.add_filter("category:food")
        engine.remove_filter("category:tech")
        assert state.filters.active == tokens("category:food")

    def test_active_by_type(self, state):
        engine = FilterEngine(state)
        engine.add_filter("category:tech")
        engine.add_filter("category:food")
        engine.add_filter("price:low")
        assert engine.active_by_type("category") == ["food", "tech"]
        assert engine.active_by_type("brand") == []

    def test_reset_keeps_modes(self, state):
        engine = FilterEngine(state)
        engine.set_mode("AND")
        engine.add_filter("category:tech")
        engine.reset()
        assert state.filters.active == {MATCH_ALL}
        assert state.filters.mode == FilterMode.AND


class TestToggle:
    """Test toggle semantics."""

    def test_double_toggle_returns_to_match_all(self, state):
        """Toggling the same token twice from {*} returns to {*}."""
        engine = FilterEngine(state)
        assert engine.toggle("category:tech") is True
        assert engine.toggle("category:tech") is False
        assert state.filters.active == {MATCH_ALL}

    def test_or_mode_replaces_same_type(self, state):
        """In OR mode a typed token deactivates its siblings."""
        engine = FilterEngine(state)
        engine.toggle("category:tech")
        engine.toggle("price:low")
        engine.toggle("category:food")
        assert state.filters.active == tokens("category:food", "price:low")

    def test_and_mode_accumulates(self, state):
        engine = FilterEngine(state)
        engine.set_mode("and")
        engine.toggle("category:tech")
        engine.toggle("category:food")
        assert state.filters.active == tokens("category:tech", "category:food")

    def test_and_mode_with_exclusive_type(self, state):
        """A caller-declared exclusive type is single-select regardless of mode."""
        engine = FilterEngine(state)
        engine.set_mode("AND")
        engine.toggle("category:tech", exclusive_types={"category"})
        engine.toggle("category:food", exclusive_types={"category"})
        engine.toggle("price:low", exclusive_types={"category"})
        engine.toggle("price:high", exclusive_types={"category"})
        assert state.filters.active == tokens("category:food", "price:low", "price:high")

    def test_configured_exclusive_types(self, state):
        engine = FilterEngine(state, exclusive_types=["brand"])
        engine.set_mode("AND")
        engine.toggle("brand:acme")
        engine.toggle("brand:globex")
        assert state.filters.active == tokens("brand:globex")

    def test_set_exclusive(self, state):
        engine = FilterEngine(state)
        engine.set_exclusive(["brand"])
        assert "brand" in engine.exclusive_types
        engine.set_exclusive(["brand"], exclusive=False)
        assert "brand" not in engine.exclusive_types

    def test_untyped_tokens_are_not_exclusive(self, state):
        engine = FilterEngine(state)
        engine.toggle("sale")
        engine.toggle("new")
        assert state.filters.active == tokens("sale", "new")

    def test_toggle_match_all_resets(self, state):
        engine = FilterEngine(state)
        engine.toggle("category:tech")
        engine.toggle("*")
        assert state.filters.active == {MATCH_ALL}


class TestModes:
    """Test mode setters."""

    @pytest.mark.parametrize("value,expected", [
        ("and", FilterMode.AND),
        ("Or", FilterMode.OR),
        (FilterMode.AND, FilterMode.AND),
        (True, FilterMode.AND),
        (False, FilterMode.OR),
    ])
    def test_valid_modes(self, state, value, expected):
        engine = FilterEngine(state)
        assert engine.set_mode(value) is True
        assert state.filters.mode == expected

    def test_invalid_mode_keeps_previous(self, state, caplog):
        engine = FilterEngine(state)
        engine.set_mode("AND")
        assert engine.set_mode("xor") is False
        assert state.filters.mode == FilterMode.AND
        assert "Invalid filter mode" in caplog.text

    def test_invalid_group_mode_keeps_previous(self, state):
        engine = FilterEngine(state)
        assert engine.set_group_mode(42) is False
        assert state.filters.group_mode == FilterMode.AND


class TestFilterGroups:
    """Test group composition."""

    def test_two_groups_combined_with_and(self, state, accessor, item_ids):
        """An item matches only if it satisfies every group's OR subset."""
        engine = FilterEngine(state)
        engine.add_group("g1", ["category:tech", "category:food"], "OR")
        engine.add_group("g2", ["price:low"], "OR")
        engine.set_group_mode("AND")

        visible = [i for i in item_ids if engine.evaluate(accessor.get_categories(i))]
        assert visible == ["4", "5"]

    def test_group_mode_or(self, state, accessor, item_ids):
        engine = FilterEngine(state)
        engine.add_group("g1", ["price:medium"])
        engine.add_group("g2", ["price:low"])
        engine.set_group_mode("OR")

        visible = [i for i in item_ids if engine.evaluate(accessor.get_categories(i))]
        assert visible == ["2", "4", "5"]

    def test_and_operator_within_group(self, state, accessor, item_ids):
        engine = FilterEngine(state)
        engine.add_group("both", ["category:tech", "category:food"], "and")

        visible = [i for i in item_ids if engine.evaluate(accessor.get_categories(i))]
        assert visible == ["3"]

    def test_empty_group_is_vacuously_true(self, state):
        engine = FilterEngine(state)
        engine.add_group("empty", [])
        engine.add_group("g2", ["price:low"])
        assert engine.evaluate({"price:low"}) is True
        assert engine.evaluate({"price:high"}) is False

    def test_groups_bypassed_by_match_all(self, state):
        engine = FilterEngine(state)
        engine.add_group("g1", ["category:tech"])
        state.filters.active = {MATCH_ALL}
        assert engine.evaluate({"category:food"}) is True

    def test_non_list_tokens_rejected(self, state, caplog):
        engine = FilterEngine(state)
        engine.add_group("g1", ["category:tech"])
        assert engine.add_group("g2", "category:food") is False
        assert list(state.filters.groups) == ["g1"]
        assert "needs a list" in caplog.text

    def test_invalid_operator_falls_back_to_or(self, state):
        engine = FilterEngine(state)
        assert engine.add_group("g1", ["category:tech"], "nand") is True
        assert state.filters.groups["g1"].operator == FilterMode.OR

    def test_add_group_merges_tokens(self, state):
        engine = FilterEngine(state)
        engine.add_group("g1", ("category:tech", "category:food"))
        assert state.filters.active == tokens("category:tech", "category:food")

    def test_remove_group_rebuilds_active(self, state):
        engine = FilterEngine(state)
        engine.add_group("g1", ["category:tech"])
        engine.add_group("g2", ["price:low"])
        assert engine.remove_group("g1") is True
        assert state.filters.active == tokens("price:low")

    def test_remove_last_group_resets(self, state):
        engine = FilterEngine(state)
        engine.add_group("g1", ["category:tech"])
        engine.remove_group("g1")
        assert state.filters.active == {MATCH_ALL}
        assert state.filters.groups == {}

    def test_remove_unknown_group(self, state):
        assert FilterEngine(state).remove_group("nope") is False

    def test_description(self, state):
        engine = FilterEngine(state)
        assert engine.description == "All categories"
        engine.add_group("g1", ["category:tech", "category:food"])
        engine.add_group("g2", ["price:low"])
        assert engine.description == "(category:food OR category:tech) AND (price:low)"
