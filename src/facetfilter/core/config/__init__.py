"""
Configuration Management Package

Provides Pydantic-based configuration models and management for facetfilter.
"""

from facetfilter.core.config.models import (
    EngineConfig,
    FilterSettings,
    SearchSettings,
    RangeSettings,
    PaginationSettings,
    PersistenceSettings,
)
from facetfilter.core.config.manager import ConfigManager

__all__ = [
    "EngineConfig",
    "FilterSettings",
    "SearchSettings",
    "RangeSettings",
    "PaginationSettings",
    "PersistenceSettings",
    "ConfigManager",
]
