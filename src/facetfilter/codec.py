"""
URL Codec

Maps a StateStore to and from a flat string-keyed parameter map suitable
for query strings, and back. Default-valued fields are omitted, so the
output of ``serialize`` is a fixed point of ``serialize(deserialize(...))``.

Parameter names::

    <type>=v1,v2             active tokens of one type
    filterMode, groupMode    only when they differ from the configured defaults
    group_<id>=t1,t2         group tokens, groupOp_<id>=and when not OR
    range_<key>=min,max      only when narrower than the bounds
    dateRange_<key>=s,e      ISO 8601 start and end
    search=<query>
    sort=<key>,<direction>   primary criterion only
    page=<n>, perPage=<n>
"""

import logging
import math
from collections import defaultdict
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

from facetfilter.core.config.models import EngineConfig
from facetfilter.core.exceptions import CodecError, ErrorCode
from facetfilter.core.state.store import (
    MATCH_ALL, DateRangeState, FilterGroup, FilterMode, FilterToken, RangeState,
    SortCriterion, StateStore, sorted_tokens,
)
from facetfilter.filters.range import format_bound
from facetfilter.filters.search import normalize_query
from facetfilter.sorting import DIRECTIONS
from facetfilter.utils import parse_date, parse_number, to_timestamp


logger = logging.getLogger(__name__)

RESERVED_NAMES = ("search", "sort", "page", "perPage", "filterMode", "groupMode")
RESERVED_PREFIXES = ("group_", "groupOp_", "range_", "dateRange_")


def is_reserved(name: str) -> bool:
    return name in RESERVED_NAMES or name.startswith(RESERVED_PREFIXES)


def to_query_string(params: Mapping[str, str]) -> str:
    """Encode a parameter map, keeping commas and colons readable."""
    return urlencode(list(params.items()), safe=",:")


def from_query_string(query_string: str) -> Dict[str, str]:
    """Decode a query string (with or without a leading '?'). Later duplicates win."""
    query_string = (query_string or "").strip()
    if query_string.startswith("?"):
        query_string = query_string[1:]
    return dict(parse_qsl(query_string, keep_blank_values=True))


class URLCodec:
    """Bidirectional StateStore to parameter map conversion."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def serialize(self, state: StateStore) -> Dict[str, str]:
        """Flatten a state into a parameter map, omitting default values."""
        params: Dict[str, str] = {}
        self._serialize_filters(state, params)
        self._serialize_ranges(state, params)

        if state.search.applied_query:
            params["search"] = state.search.applied_query

        if state.sort:
            primary = state.sort[0]
            params["sort"] = f"{primary.key},{primary.direction}"

        pagination = state.pagination
        if pagination.current_page > 1:
            params["page"] = str(pagination.current_page)
        if pagination.items_per_page != self.config.pagination.items_per_page:
            params["perPage"] = str(pagination.items_per_page)

        return params

    def _serialize_filters(self, state: StateStore, params: Dict[str, str]) -> None:
        filters = state.filters

        if not filters.is_match_all:
            by_type = defaultdict(list)
            for token in sorted_tokens(filters.active):
                if not token.is_typed:
                    logger.warning(f"Untyped filter token {token} cannot be serialized, omitting")
                    continue
                if is_reserved(token.type):
                    logger.warning(f"Filter type {token.type!r} collides with a reserved parameter, omitting")
                    continue
                if "," in token.value:
                    logger.warning(f"Filter value {token.value!r} contains a comma, omitting")
                    continue
                by_type[token.type].append(token.value)
            for token_type in sorted(by_type):
                params[token_type] = ",".join(by_type[token_type])

        if filters.mode.value != self.config.filters.mode:
            params["filterMode"] = filters.mode.value.lower()
        if filters.group_mode.value != self.config.filters.group_mode:
            params["groupMode"] = filters.group_mode.value.lower()

        for group_id, group in filters.groups.items():
            members = []
            for token in sorted_tokens(group.tokens):
                if "," in str(token):
                    logger.warning(f"Group {group_id} token {str(token)!r} contains a comma, omitting")
                    continue
                members.append(str(token))
            params[f"group_{group_id}"] = ",".join(members)
            if group.operator != FilterMode.OR:
                params[f"groupOp_{group_id}"] = group.operator.value.lower()

    def _serialize_ranges(self, state: StateStore, params: Dict[str, str]) -> None:
        for key, current in state.ranges.items():
            if current.is_full:
                continue
            if not (math.isfinite(current.current_min) and math.isfinite(current.current_max)):
                logger.warning(f"Range {key} has an unbounded selection, omitting")
                continue
            params[f"range_{key}"] = (
                f"{format_bound(current.current_min, current.type)},"
                f"{format_bound(current.current_max, current.type)}"
            )

        for key, selection in state.date_ranges.items():
            params[f"dateRange_{key}"] = f"{selection.start.isoformat()},{selection.end.isoformat()}"

    def deserialize(self, params: Any, template: Optional[StateStore] = None) -> StateStore:
        """
        Build a state from a parameter map.

        Malformed entries are skipped with a warning. If the map itself is
        unusable the default state is returned.

        Args:
            params: Flat parameter map
            template: Current state; supplies range bounds and types for
                keys the map mentions, and keeps registered ranges at full
                extent otherwise
        """
        try:
            return self._deserialize(params, template)
        except CodecError as e:
            logger.error(f"Could not decode parameters, using default state: {e.message}")
        except Exception as e:
            logger.error(f"Unexpected error decoding parameters, using default state: {e}")
        return StateStore.from_config(self.config)

    def _deserialize(self, params: Any, template: Optional[StateStore]) -> StateStore:
        if not isinstance(params, Mapping):
            raise CodecError(
                f"Parameters must be a mapping, got {type(params).__name__}",
                error_code=ErrorCode.CODEC_INVALID_PARAMS,
            )

        store = StateStore.from_config(self.config)
        if template is not None:
            store.search.keys = list(template.search.keys)
            store.search.min_length = template.search.min_length
            for key, current in template.ranges.items():
                store.ranges[key] = RangeState(
                    min=current.min, max=current.max,
                    current_min=current.min, current_max=current.max,
                    step=current.step, type=current.type,
                )

        active = set()
        group_ops: Dict[str, str] = {}

        for name, raw in params.items():
            name = str(name)
            value = "" if raw is None else str(raw)
            try:
                if name == "search":
                    query = normalize_query(value)
                    store.search.query = query
                    store.search.applied_query = query
                elif name == "sort":
                    store.sort = [self._decode_sort(value)]
                elif name == "page":
                    store.pagination.current_page = self._decode_positive_int(name, value)
                elif name == "perPage":
                    store.pagination.items_per_page = self._decode_positive_int(name, value)
                elif name in ("filterMode", "groupMode"):
                    mode = FilterMode.coerce(value)
                    if mode is None:
                        raise CodecError(f"Invalid mode {value!r}", key=name, value=value,
                                         error_code=ErrorCode.CODEC_MALFORMED_ENTRY)
                    if name == "filterMode":
                        store.filters.mode = mode
                    else:
                        store.filters.group_mode = mode
                elif name.startswith("groupOp_"):
                    group_ops[name[len("groupOp_"):]] = value
                elif name.startswith("group_"):
                    group_id = name[len("group_"):]
                    tokens = {FilterToken.parse(v) for v in value.split(",") if v.strip()}
                    tokens.discard(MATCH_ALL)
                    store.filters.groups[group_id] = FilterGroup(id=group_id, tokens=tokens)
                elif name.startswith("range_"):
                    key = name[len("range_"):]
                    store.ranges[key] = self._decode_range(key, value, store.ranges.get(key))
                elif name.startswith("dateRange_"):
                    key = name[len("dateRange_"):]
                    store.date_ranges[key] = self._decode_date_range(key, value)
                elif name:
                    for item in value.split(","):
                        item = item.strip()
                        if item:
                            active.add(FilterToken(name, item))
            except CodecError as e:
                logger.warning(f"Skipping parameter {name}={value!r}: {e.message}")

        for group_id, op_value in group_ops.items():
            group = store.filters.groups.get(group_id)
            op = FilterMode.coerce(op_value)
            if group is None or op is None:
                logger.warning(f"Skipping groupOp_{group_id}={op_value!r}")
                continue
            group.operator = op

        for group in store.filters.groups.values():
            active |= group.tokens
        store.filters.active = active or {MATCH_ALL}

        logger.debug(f"Decoded {len(params)} parameters")
        return store

    @staticmethod
    def _decode_positive_int(name: str, value: str) -> int:
        try:
            number = int(value)
        except ValueError:
            number = 0
        if number < 1:
            raise CodecError(f"Expected a positive integer, got {value!r}", key=name, value=value,
                             error_code=ErrorCode.CODEC_MALFORMED_ENTRY)
        return number

    @staticmethod
    def _decode_sort(value: str) -> SortCriterion:
        key, _, direction = value.partition(",")
        key, direction = key.strip(), (direction.strip().lower() or "asc")
        if not key or direction not in DIRECTIONS:
            raise CodecError(f"Invalid sort {value!r}", key="sort", value=value,
                             error_code=ErrorCode.CODEC_MALFORMED_ENTRY)
        return SortCriterion(key=key, direction=direction)

    @staticmethod
    def _decode_range(key: str, value: str, known: Optional[RangeState]) -> RangeState:
        parts = value.split(",")
        if len(parts) != 2:
            raise CodecError(f"Range needs two values, got {value!r}", key=f"range_{key}", value=value,
                             error_code=ErrorCode.CODEC_MALFORMED_ENTRY)

        range_type = known.type if known is not None else None
        lo = hi = None
        if range_type in (None, "number"):
            lo, hi = parse_number(parts[0]), parse_number(parts[1])
            if lo is not None and hi is not None:
                range_type = "number"
        if range_type in (None, "date") and (lo is None or hi is None):
            start, end = parse_date(parts[0]), parse_date(parts[1])
            if start is not None and end is not None:
                lo, hi, range_type = to_timestamp(start), to_timestamp(end), "date"

        if lo is None or hi is None:
            raise CodecError(f"Unparsable range {value!r}", key=f"range_{key}", value=value,
                             error_code=ErrorCode.CODEC_MALFORMED_ENTRY)

        if known is not None:
            decoded = RangeState(min=known.min, max=known.max, current_min=known.min,
                                 current_max=known.max, step=known.step, type=known.type)
        else:
            decoded = RangeState(min=-math.inf, max=math.inf, current_min=-math.inf,
                                 current_max=math.inf, type=range_type)
        decoded.clamp(lo, hi)
        return decoded

    @staticmethod
    def _decode_date_range(key: str, value: str) -> DateRangeState:
        parts = value.split(",")
        start = parse_date(parts[0]) if len(parts) == 2 else None
        end = parse_date(parts[1]) if len(parts) == 2 else None
        if start is None or end is None:
            raise CodecError(f"Unparsable date range {value!r}", key=f"dateRange_{key}", value=value,
                             error_code=ErrorCode.CODEC_MALFORMED_ENTRY)
        if start > end:
            start, end = end, start
        return DateRangeState(start=start, end=end)
