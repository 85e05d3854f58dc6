"""
Attribute access for externally owned items.

The engine never holds items. It only asks an accessor for an item's
category tokens and named attribute values.
"""

import logging
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Protocol, Set, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class AttributeAccessor(Protocol):
    """Read-only view of the items a FacetEngine filters."""

    def get_categories(self, item_id: Hashable) -> Set[str]:
        """Category tokens of an item, as ``type:value`` strings."""
        ...

    def get_attribute(self, item_id: Hashable, key: str) -> Optional[str]:
        """Raw value of a named attribute, or None if the item lacks it."""
        ...


class MappingAccessor:
    """
    Accessor over a ``{item_id: {attribute: value}}`` mapping.

    Categories are read from ``categories_field`` and may be a list of
    tokens or a single space-separated string.
    """

    def __init__(self, items: Mapping[Hashable, Mapping[str, Any]], categories_field: str = "categories"):
        self.items = items
        self.categories_field = categories_field

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        id_field: str = "id",
        categories_field: str = "categories",
    ) -> "MappingAccessor":
        """
        Build an accessor from a list of records carrying their own id.

        Raises:
            ValueError: If a record has no id or an id repeats
        """
        items: Dict[Hashable, Mapping[str, Any]] = {}
        for index, record in enumerate(records):
            if id_field not in record:
                raise ValueError(f"Record {index} has no '{id_field}' field")
            item_id = record[id_field]
            if item_id in items:
                raise ValueError(f"Duplicate item id: {item_id!r}")
            items[item_id] = record
        return cls(items, categories_field=categories_field)

    @property
    def ids(self) -> List[Hashable]:
        return list(self.items.keys())

    def get_categories(self, item_id: Hashable) -> Set[str]:
        record = self.items.get(item_id) or {}
        raw = record.get(self.categories_field)
        if raw is None:
            return set()
        if isinstance(raw, str):
            return set(raw.split())
        return {str(token) for token in raw}

    def get_attribute(self, item_id: Hashable, key: str) -> Optional[str]:
        record = self.items.get(item_id) or {}
        value = record.get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)
