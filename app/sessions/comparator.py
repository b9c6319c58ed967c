"""In-memory ordering of already materialized sessions.

Used by views that bypass pushdown pagination (e.g. "load all" or
re-sorting a hydrated slice). Must order exactly like the SQL produced by
``query_planner``: both read ``columns.SORTABLE_COLUMNS``.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from app.sessions.columns import effective_direction, resolve_column
from app.sessions.models import UnifiedSession
from app.sessions.sort_spec import SortConfig

SortValue = int | float | str | None


def _normalize(value: Any) -> SortValue:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return value


def get_sort_value(record: UnifiedSession, column: str, planned_date_as_date: bool = False) -> SortValue:
    """Read a record's value for a sortable column.

    Planned records read the planned/target field with its unit transform;
    completed records read the realized field. Planned records of a column
    with no planned equivalent yield None.
    """
    semantics = resolve_column(column, planned_date_as_date)
    read = semantics.planned if record.is_planned else semantics.realized
    if read is None:
        return None
    return _normalize(read.transform.apply(getattr(record, read.field)))


def compare_values(a: SortValue, b: SortValue, direction: str, invert: bool = False) -> int:
    """Compare two sort values.

    None sorts after any value regardless of direction; two Nones are equal.
    ``invert`` flips the direction before comparing.

    Returns:
        -1 if a sorts first, 1 if b sorts first, 0 if equal
    """
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1

    effective = effective_direction(direction, invert)
    if a < b:
        return -1 if effective == "asc" else 1
    if a > b:
        return 1 if effective == "asc" else -1
    return 0


def _compare_default(a: UnifiedSession, b: UnifiedSession) -> int:
    # status desc puts "planned" above "completed", then most recent number first
    result = compare_values(str(a.status), str(b.status), "desc")
    if result:
        return result
    return compare_values(a.session_number, b.session_number, "desc")


def compare_sessions(
    a: UnifiedSession,
    b: UnifiedSession,
    config: SortConfig,
    planned_date_as_date: bool = False,
) -> int:
    """Compare two sessions by a sort config; the first non-zero column decides."""
    if not config:
        return _compare_default(a, b)

    for item in config:
        semantics = resolve_column(item.column, planned_date_as_date)
        result = compare_values(
            get_sort_value(a, item.column, planned_date_as_date),
            get_sort_value(b, item.column, planned_date_as_date),
            item.direction,
            semantics.invert,
        )
        if result:
            return result
    return 0


def sort_sessions(
    records: Iterable[UnifiedSession],
    config: SortConfig,
    planned_date_as_date: bool = False,
) -> list[UnifiedSession]:
    """Return records sorted by config; ties keep their input order."""
    key = functools.cmp_to_key(lambda a, b: compare_sessions(a, b, config, planned_date_as_date))
    return sorted(records, key=key)
