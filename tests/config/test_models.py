"""
Tests for Configuration Models

Tests pydantic validation and defaults of the engine configuration.
"""

import pytest
from pathlib import Path
from pydantic import ValidationError

from facetfilter.core.config.models import (
    EngineConfig, FilterSettings, PaginationSettings, PersistenceSettings, RangeSettings, SearchSettings,
)


class TestFilterSettings:
    """Test FilterSettings validation."""

    def test_defaults(self):
        settings = FilterSettings()
        assert settings.mode == "OR"
        assert settings.group_mode == "AND"
        assert settings.exclusive_types == []
        assert settings.categories_field == "categories"

    def test_mode_is_normalized(self):
        assert FilterSettings(mode="and", group_mode="Or").mode == "AND"

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            FilterSettings(mode="xor")

    def test_exclusive_types_deduplicated(self):
        settings = FilterSettings(exclusive_types=["brand", " brand ", "", "size"])
        assert settings.exclusive_types == ["brand", "size"]


class TestSearchSettings:
    """Test SearchSettings validation."""

    def test_defaults(self):
        settings = SearchSettings()
        assert settings.keys == ["title"]
        assert settings.min_length == 2

    def test_empty_keys_rejected(self):
        with pytest.raises(ValidationError):
            SearchSettings(keys=[" ", ""])

    def test_min_length_bounds(self):
        assert SearchSettings(min_length=0).min_length == 0
        with pytest.raises(ValidationError):
            SearchSettings(min_length=-1)
        with pytest.raises(ValidationError):
            SearchSettings(min_length=101)


class TestRangeSettings:
    """Test RangeSettings validation."""

    def test_defaults(self):
        settings = RangeSettings()
        assert settings.histogram_bins == 10
        assert settings.histogram_floor == 20
        assert (settings.default_min, settings.default_max) == (0, 100)

    def test_inverted_window_rejected(self):
        with pytest.raises(ValidationError):
            RangeSettings(default_min=10, default_max=1)

    def test_bins_must_be_positive(self):
        with pytest.raises(ValidationError):
            RangeSettings(histogram_bins=0)


class TestEngineConfig:
    """Test the root configuration model."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.pagination.items_per_page == 10
        assert config.persistence.state_expiry == 86400
        assert config.persistence.snapshot_path == Path(".facetfilter") / "state.json"
        assert config.debug is False

    def test_nested_dicts(self):
        config = EngineConfig(search={"keys": ["title", "brand"]}, pagination={"items_per_page": 25})
        assert config.search.keys == ["title", "brand"]
        assert config.pagination.items_per_page == 25

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            EngineConfig(unknown_section={})

    def test_validate_assignment(self):
        config = EngineConfig()
        with pytest.raises(ValidationError):
            config.pagination = PaginationSettings(items_per_page=0)

    def test_expiry_must_be_positive(self):
        with pytest.raises(ValidationError):
            PersistenceSettings(state_expiry=0)

    def test_from_options(self):
        config = EngineConfig.from_options(
            filter_mode="and",
            group_mode="or",
            search_keys=["title", "tags"],
            min_search_length=3,
            items_per_page=50,
        )
        assert config.filters.mode == "AND"
        assert config.filters.group_mode == "OR"
        assert config.search.keys == ["title", "tags"]
        assert config.search.min_length == 3
        assert config.pagination.items_per_page == 50

    def test_from_options_defaults(self):
        assert EngineConfig.from_options() == EngineConfig()
