"""
Snapshot and Preset Persistence

Saves the user-facing part of a state (filters, search, sort, page) as
JSON. A snapshot is a single file that expires; presets are named files in
a directory and never expire.
"""

import json
import logging
import re
import time
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from facetfilter.core.exceptions import ErrorCode, SnapshotError
from facetfilter.core.state.store import (
    MATCH_ALL, FilterMode, FilterToken, SortCriterion, StateStore, sorted_tokens,
)


logger = logging.getLogger(__name__)

_PRESET_NAME = re.compile(r'^[A-Za-z0-9_.-]+$')


class SnapshotSort(BaseModel):
    key: str
    direction: str = "asc"

    @field_validator('direction')
    @classmethod
    def validate_direction(cls, v):
        v = v.lower()
        if v not in ("asc", "desc"):
            raise ValueError("direction must be 'asc' or 'desc'")
        return v


class SnapshotPagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(default=1, ge=1, alias="currentPage")
    items_per_page: int = Field(default=10, ge=1, alias="itemsPerPage")


class Snapshot(BaseModel):
    """Persisted snapshot of a state."""

    filters: List[str] = Field(default_factory=lambda: ["*"])
    search: str = ""
    sort: Optional[SnapshotSort] = None
    pagination: SnapshotPagination = Field(default_factory=SnapshotPagination)
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def capture(cls, state: StateStore) -> "Snapshot":
        primary = state.sort[0] if state.sort else None
        return cls(
            filters=[str(t) for t in sorted_tokens(state.filters.active)],
            search=state.search.applied_query,
            sort=SnapshotSort(key=primary.key, direction=primary.direction) if primary else None,
            pagination=SnapshotPagination(
                current_page=state.pagination.current_page,
                items_per_page=state.pagination.items_per_page,
            ),
        )

    def is_expired(self, expiry: float, now: Optional[float] = None) -> bool:
        return ((now or time.time()) - self.timestamp) > expiry

    def apply_to(self, state: StateStore) -> None:
        """Write the snapshot's fields into a state. Groups are cleared."""
        tokens = {FilterToken.parse(t) for t in self.filters if t.strip()}
        if MATCH_ALL in tokens or not tokens:
            tokens = {MATCH_ALL}
        state.filters.active = tokens
        state.filters.groups.clear()
        state.search.query = self.search
        state.search.applied_query = self.search
        state.sort = [SortCriterion(key=self.sort.key, direction=self.sort.direction)] if self.sort else []
        state.pagination.current_page = self.pagination.current_page
        state.pagination.items_per_page = self.pagination.items_per_page

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class Preset(BaseModel):
    """Named filter and search combination."""

    filters: List[str] = Field(default_factory=lambda: ["*"])
    search: str = ""
    mode: str = "OR"

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v):
        mode = FilterMode.coerce(v)
        if mode is None:
            raise ValueError("mode must be AND or OR")
        return mode.value

    @classmethod
    def capture(cls, state: StateStore) -> "Preset":
        return cls(
            filters=[str(t) for t in sorted_tokens(state.filters.active)],
            search=state.search.applied_query,
            mode=state.filters.mode.value,
        )

    def apply_to(self, state: StateStore) -> None:
        tokens = {FilterToken.parse(t) for t in self.filters if t.strip()}
        if MATCH_ALL in tokens or not tokens:
            tokens = {MATCH_ALL}
        state.filters.active = tokens
        state.filters.groups.clear()
        state.filters.mode = FilterMode(self.mode)
        state.search.query = self.search
        state.search.applied_query = self.search


class SnapshotStore:
    """
    Single-file snapshot storage with expiry.

    A snapshot older than ``expiry`` seconds is discarded on load and its
    file removed.
    """

    def __init__(self, path: Union[str, Path], expiry: float = 86400.0):
        self.path = Path(path)
        self.expiry = expiry

    def save(self, state: StateStore) -> Snapshot:
        """
        Write a snapshot of the state.

        Raises:
            SnapshotError: If the file cannot be written
        """
        snapshot = Snapshot.capture(state)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(snapshot.to_json(), encoding="utf-8")
        except OSError as e:
            raise SnapshotError(
                f"Failed to write snapshot: {e}",
                error_code=ErrorCode.SNAPSHOT_WRITE_FAILED,
                file_path=str(self.path),
                cause=e,
            )
        logger.debug(f"Saved snapshot to {self.path}")
        return snapshot

    def load(self, now: Optional[float] = None) -> Optional[Snapshot]:
        """
        Read the snapshot.

        Returns:
            The snapshot, or None if there is none or it expired

        Raises:
            SnapshotError: If the file exists but is not a valid snapshot
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            snapshot = Snapshot.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise SnapshotError(
                f"Corrupt snapshot file: {e}",
                error_code=ErrorCode.SNAPSHOT_CORRUPT,
                file_path=str(self.path),
                cause=e,
            )

        if snapshot.is_expired(self.expiry, now):
            logger.info(f"Snapshot at {self.path} expired, discarding")
            self.clear()
            return None

        return snapshot

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class PresetStore:
    """Named presets stored as ``<name>.json`` in a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        if not name or not _PRESET_NAME.match(name):
            raise SnapshotError(
                f"Invalid preset name: {name!r}",
                error_code=ErrorCode.PRESET_NOT_FOUND,
            )
        return self.directory / f"{name}.json"

    def save(self, name: str, state: StateStore) -> Preset:
        preset = Preset.capture(state)
        path = self._path(name)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(preset.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise SnapshotError(
                f"Failed to write preset {name}: {e}",
                error_code=ErrorCode.SNAPSHOT_WRITE_FAILED,
                file_path=str(path),
                cause=e,
            )
        logger.info(f"Saved preset {name}")
        return preset

    def load(self, name: str) -> Preset:
        """
        Raises:
            SnapshotError: If the preset does not exist or is corrupt
        """
        path = self._path(name)
        if not path.exists():
            raise SnapshotError(
                f"Preset not found: {name}",
                error_code=ErrorCode.PRESET_NOT_FOUND,
                file_path=str(path),
            )
        try:
            return Preset.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise SnapshotError(
                f"Corrupt preset {name}: {e}",
                error_code=ErrorCode.SNAPSHOT_CORRUPT,
                file_path=str(path),
                cause=e,
            )

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def names(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))
