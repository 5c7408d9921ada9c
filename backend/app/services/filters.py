"""
Filter resolver.

Turns the independent filter dimensions a map consumer holds (type
selection, neighborhood selection, date range, limit and the set of
neighborhoods currently in view) into one immutable QueryDescriptor.

Descriptor dimensions use two distinct "empty" values:
- None: the dimension is unrestricted.
- frozenset(): the dimension matches nothing, so the whole query is empty.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from app.config import get_settings
from app.errors import ValidationError
from app.schemas.catalog import IncidentCodeOut

settings = get_settings()

DATE_FORMAT = "%Y-%m-%d"

# Leading integer of a list item: "11abc" -> 11, "1.5" -> 1.
_LEADING_INT = re.compile(r"[+-]?\d+")


def normalize_limit(value: int | str | None, default: int | None = None) -> int:
    """Parse a result cap; missing, non-positive or unparsable values fall back to the default."""
    fallback = default if default is not None else settings.default_incident_limit
    if value is None:
        return fallback
    try:
        limit = int(str(value).strip())
    except ValueError:
        return fallback
    return limit if limit > 0 else fallback


def parse_int_list(value: str | None) -> list[int]:
    """
    Parse a comma separated list of integers.

    Each item contributes its leading integer; blank items and items that do
    not start with a number are skipped.
    """
    if not value:
        return []
    parsed = []
    for item in value.split(","):
        match = _LEADING_INT.match(item.strip())
        if match:
            parsed.append(int(match.group()))
    return parsed


def parse_date(value: str | date | None, field_name: str = "date") -> date | None:
    """Parse a YYYY-MM-DD date. Blank means no bound."""
    if value is None or isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name} '{value}', expected YYYY-MM-DD") from e


def _as_filter(values: Iterable[int] | None) -> frozenset[int] | None:
    """Boundary semantics: an empty or missing set means unrestricted."""
    if values is None:
        return None
    values = frozenset(values)
    return values or None


@dataclass(frozen=True)
class QueryDescriptor:
    """Normalized, order-independent incident query."""

    codes: frozenset[int] | None = None
    grids: frozenset[int] | None = None
    neighborhoods: frozenset[int] | None = None
    start_date: date | None = None
    end_date: date | None = None
    limit: int = field(default_factory=lambda: settings.default_incident_limit)

    @classmethod
    def from_params(
        cls,
        *,
        codes: Iterable[int] | None = None,
        grids: Iterable[int] | None = None,
        neighborhoods: Iterable[int] | None = None,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        limit: int | str | None = None,
    ) -> "QueryDescriptor":
        """Build a descriptor from boundary parameters where empty sets mean no restriction."""
        return cls(
            codes=_as_filter(codes),
            grids=_as_filter(grids),
            neighborhoods=_as_filter(neighborhoods),
            start_date=parse_date(start_date, "start_date"),
            end_date=parse_date(end_date, "end_date"),
            limit=normalize_limit(limit),
        )

    @property
    def matches_nothing(self) -> bool:
        """True when a restricted dimension has no allowed values."""
        return any(
            dimension is not None and not dimension
            for dimension in (self.codes, self.grids, self.neighborhoods)
        )


@dataclass
class FilterState:
    """Consumer-side filter selections. Never persisted."""

    selected_types: set[str] = field(default_factory=set)
    selected_neighborhood_ids: set[int] = field(default_factory=set)
    start_date: date | None = None
    end_date: date | None = None
    limit: int | None = None
    visible_neighborhood_ids: frozenset[int] = frozenset()


def effective_code_filter(
    selected_types: Iterable[str], codes: Sequence[IncidentCodeOut]
) -> frozenset[int] | None:
    """Union of codes mapped from the selected type names; no selection means no restriction."""
    selected = set(selected_types)
    if not selected:
        return None
    return frozenset(entry.code for entry in codes if entry.type in selected)


def effective_neighborhood_filter(
    selected_ids: Iterable[int], visible_ids: Iterable[int]
) -> frozenset[int]:
    """
    Neighborhoods a query may return.

    A manual selection is narrowed to what is visible; without a selection
    every visible neighborhood is used. The result is always a subset of
    `visible_ids`.
    """
    visible = frozenset(visible_ids)
    selected = frozenset(selected_ids)
    if selected:
        return selected & visible
    return visible


def resolve_filters(state: FilterState, codes: Sequence[IncidentCodeOut]) -> QueryDescriptor:
    """Resolve a filter state against the code catalog into a query descriptor."""
    return QueryDescriptor(
        codes=effective_code_filter(state.selected_types, codes),
        neighborhoods=effective_neighborhood_filter(
            state.selected_neighborhood_ids, state.visible_neighborhood_ids
        ),
        start_date=state.start_date,
        end_date=state.end_date,
        limit=normalize_limit(state.limit),
    )
