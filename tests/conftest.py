"""
Shared Test Configuration and Fixtures

Sample item collection, accessors and engine instances used across the
test suite.
"""

import pytest

from facetfilter.accessor import MappingAccessor
from facetfilter.core.config.models import EngineConfig
from facetfilter.core.state.store import StateStore
from facetfilter.engine import FacetEngine


SAMPLE_ITEMS = {
    "1": {
        "title": "Laptop Pro",
        "categories": ["category:tech", "price:high"],
        "price": "1200",
        "date": "2024-03-15",
        "rating": "4.5",
    },
    "2": {
        "title": "Pizza Oven",
        "categories": "category:food price:medium",
        "price": "300",
        "date": "2024-01-10",
        "rating": "4.8",
    },
    "3": {
        "title": "Smart Fridge",
        "categories": ["category:tech", "category:food", "price:high"],
        "price": "2000",
        "date": "2024-06-01T18:30:00",
        "rating": "3.9",
    },
    "4": {
        "title": "Cookbook",
        "categories": ["category:food", "price:low"],
        "price": "25",
        "date": "2023-11-20",
        "rating": "4.2",
    },
    "5": {
        "title": "USB Cable",
        "categories": ["category:tech", "price:low"],
        "price": "9.99",
        "date": "2024-03-15T23:59:00",
    },
    "6": {
        "title": "Mystery Box",
        "categories": [],
        "price": "n/a",
    },
}


@pytest.fixture
def items():
    """Sample items keyed by id."""
    return {item_id: dict(record) for item_id, record in SAMPLE_ITEMS.items()}


@pytest.fixture
def item_ids(items):
    return list(items.keys())


@pytest.fixture
def accessor(items):
    return MappingAccessor(items)


@pytest.fixture
def state():
    return StateStore()


@pytest.fixture
def config(tmp_path):
    """Default configuration with persistence redirected into a temp dir."""
    return EngineConfig(persistence={
        "snapshot_path": tmp_path / "state.json",
        "preset_dir": tmp_path / "presets",
    })


@pytest.fixture
def engine(accessor, item_ids, config):
    return FacetEngine(accessor, item_ids, config)
