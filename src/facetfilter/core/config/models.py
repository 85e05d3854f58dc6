"""
Configuration Models

Pydantic models for type-safe engine configuration with validation,
defaults, and field documentation.
"""

from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


VALID_MODES = ('AND', 'OR')


def _validate_mode(value: str) -> str:
    if not isinstance(value, str) or value.upper() not in VALID_MODES:
        raise ValueError(f"Mode must be one of: {', '.join(VALID_MODES)}")
    return value.upper()


class FilterSettings(BaseModel):
    """Configuration for category filtering."""

    mode: str = Field(
        default="OR",
        description="How active filter tokens combine when no groups are defined (AND/OR)"
    )
    group_mode: str = Field(
        default="AND",
        description="How filter group results combine with each other (AND/OR)"
    )
    exclusive_types: List[str] = Field(
        default_factory=list,
        description="Token types that behave like single-select groups when toggled"
    )
    categories_field: str = Field(
        default="categories",
        description="Item attribute holding the item's category tokens"
    )

    @field_validator('mode', 'group_mode')
    @classmethod
    def validate_mode(cls, v):
        """Normalize and validate composition modes."""
        return _validate_mode(v)

    @field_validator('exclusive_types')
    @classmethod
    def validate_exclusive_types(cls, v):
        """Strip blanks and duplicates while keeping order."""
        seen = []
        for item in v:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return seen


class SearchSettings(BaseModel):
    """Configuration for free-text search."""

    keys: List[str] = Field(
        default_factory=lambda: ["title"],
        description="Item attributes concatenated into the searchable text"
    )
    min_length: int = Field(
        default=2,
        ge=0,
        le=100,
        description="Minimum normalized query length that rebuilds the matcher"
    )

    @field_validator('keys')
    @classmethod
    def validate_keys(cls, v):
        """Search keys must name at least one attribute."""
        keys = [key.strip() for key in v if key and key.strip()]
        if not keys:
            raise ValueError("search keys must be a non-empty list")
        return keys


class RangeSettings(BaseModel):
    """Configuration for range sliders and histograms."""

    histogram_bins: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Number of equal-width histogram bins"
    )
    histogram_floor: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Minimum bar height (percent) for non-empty histograms"
    )
    default_min: float = Field(
        default=0.0,
        description="Lower bound used when no item has a numeric value for a key"
    )
    default_max: float = Field(
        default=100.0,
        description="Upper bound used when no item has a numeric value for a key"
    )

    @model_validator(mode='after')
    def validate_default_window(self):
        """The fallback window must not be inverted."""
        if self.default_min > self.default_max:
            raise ValueError("default_min cannot be greater than default_max")
        return self


class PaginationSettings(BaseModel):
    """Configuration for the pagination cursor."""

    items_per_page: int = Field(
        default=10,
        ge=1,
        le=10000,
        description="Default number of items per page"
    )


class PersistenceSettings(BaseModel):
    """Configuration for snapshots and presets."""

    state_expiry: float = Field(
        default=86400.0,
        gt=0,
        description="Seconds after which a saved snapshot is discarded"
    )
    snapshot_path: Path = Field(
        default=Path(".facetfilter") / "state.json",
        description="File holding the last saved snapshot"
    )
    preset_dir: Path = Field(
        default=Path(".facetfilter") / "presets",
        description="Directory holding named presets"
    )


class EngineConfig(BaseModel):
    """
    Main engine configuration model.

    Combines all configuration sections with validation.
    """

    filters: FilterSettings = Field(
        default_factory=FilterSettings,
        description="Category filter configuration"
    )
    search: SearchSettings = Field(
        default_factory=SearchSettings,
        description="Search configuration"
    )
    ranges: RangeSettings = Field(
        default_factory=RangeSettings,
        description="Range slider configuration"
    )
    pagination: PaginationSettings = Field(
        default_factory=PaginationSettings,
        description="Pagination configuration"
    )
    persistence: PersistenceSettings = Field(
        default_factory=PersistenceSettings,
        description="Snapshot and preset configuration"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging"
    )

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    @classmethod
    def from_options(
        cls,
        filter_mode: Optional[str] = None,
        group_mode: Optional[str] = None,
        search_keys: Optional[List[str]] = None,
        min_search_length: Optional[int] = None,
        items_per_page: Optional[int] = None,
    ) -> "EngineConfig":
        """Build a configuration from the flat option names used by callers."""
        data = {}
        if filter_mode is not None:
            data.setdefault('filters', {})['mode'] = filter_mode
        if group_mode is not None:
            data.setdefault('filters', {})['group_mode'] = group_mode
        if search_keys is not None:
            data.setdefault('search', {})['keys'] = search_keys
        if min_search_length is not None:
            data.setdefault('search', {})['min_length'] = min_search_length
        if items_per_page is not None:
            data.setdefault('pagination', {})['items_per_page'] = items_per_page
        return cls(**data)
