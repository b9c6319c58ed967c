"""Per-column sort semantics for the unified session timeline.

This table is the only place where a sortable column is mapped onto
record fields. The in-memory comparator and the SQL query planner both read
it, so the two sort paths cannot drift apart.

Each column names the field read on a realized record, the field read on a
planned record (None when planned sessions have no equivalent, in which
case they sort last), a unit transform per side, and whether the requested
direction is inverted. Field names exist both on ``UnifiedSession`` and on
the ORM models (``avg_pace_seconds`` and friends are derived columns on the
models and derived properties on ``UnifiedSession``).

Normalized units: seconds for durations and paces, meters for distances,
bpm for heart rate. Session types fold A-Z to lower case only and compare by
code point on both paths (SQLite natively, PostgreSQL under the "C"
collation).
"""

from __future__ import annotations

import string
from dataclasses import dataclass, replace
from typing import Any

from sqlalchemy import String
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.functions import FunctionElement

_ASCII_FOLD = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class ascii_lower(FunctionElement):
    """SQL lower() restricted to A-Z, yielding a code-point ordered value."""

    type = String()
    name = "ascii_lower"
    inherit_cache = True


@compiles(ascii_lower)
def _compile_ascii_lower(element, compiler, **kw):
    return f"lower({compiler.process(element.clauses, **kw)})"


@compiles(ascii_lower, "postgresql")
def _compile_ascii_lower_postgresql(element, compiler, **kw):
    return f'lower(({compiler.process(element.clauses, **kw)}) COLLATE "C")'


def effective_direction(direction: str, invert: bool) -> str:
    """Direction actually applied to raw values once inversion is taken into account."""
    if not invert:
        return direction
    return "desc" if direction == "asc" else "asc"


@dataclass(frozen=True)
class Transform:
    """Unit normalization applied to a raw field value.

    Attributes:
        scale: Multiplier (e.g. 60 for minutes -> seconds)
        lower: Fold ASCII letters to lower case
    """

    scale: int | float | None = None
    lower: bool = False

    def apply(self, value: Any) -> Any:
        if value is None:
            return None
        if self.lower:
            return str(value).translate(_ASCII_FOLD)
        if self.scale is not None:
            return value * self.scale
        return value

    def to_sql(self, expr: ColumnElement) -> ColumnElement:
        if self.lower:
            return ascii_lower(expr)
        if self.scale is not None:
            return expr * self.scale
        return expr


IDENTITY = Transform()
LOWER = Transform(lower=True)
MINUTES_TO_SECONDS = Transform(scale=60)
KM_TO_METERS = Transform(scale=1000)


@dataclass(frozen=True)
class FieldRead:
    """A field read on one side of the union, with its unit transform."""

    field: str
    transform: Transform = IDENTITY


@dataclass(frozen=True)
class ColumnSemantics:
    """How one sortable column is read and ordered.

    ``invert`` is set on lower-is-better columns: a "desc" request (best
    first) orders the raw value ascending.
    """

    name: str
    realized: FieldRead
    planned: FieldRead | None = None
    invert: bool = False

    def effective_direction(self, direction: str) -> str:
        return effective_direction(direction, self.invert)


SORTABLE_COLUMNS: dict[str, ColumnSemantics] = {
    "sessionNumber": ColumnSemantics(
        name="sessionNumber",
        realized=FieldRead("session_number"),
        planned=FieldRead("session_number"),
    ),
    "week": ColumnSemantics(
        name="week",
        realized=FieldRead("week"),
        planned=FieldRead("week"),
    ),
    "date": ColumnSemantics(
        name="date",
        realized=FieldRead("date"),
    ),
    "sessionType": ColumnSemantics(
        name="sessionType",
        realized=FieldRead("session_type", LOWER),
        planned=FieldRead("session_type", LOWER),
    ),
    "duration": ColumnSemantics(
        name="duration",
        realized=FieldRead("duration_seconds"),
        planned=FieldRead("target_duration", MINUTES_TO_SECONDS),
    ),
    "distance": ColumnSemantics(
        name="distance",
        realized=FieldRead("distance_meters"),
        planned=FieldRead("target_distance", KM_TO_METERS),
    ),
    "avgPace": ColumnSemantics(
        name="avgPace",
        realized=FieldRead("avg_pace_seconds"),
        planned=FieldRead("target_pace_seconds"),
        invert=True,
    ),
    "avgHeartRate": ColumnSemantics(
        name="avgHeartRate",
        realized=FieldRead("avg_heart_rate"),
        planned=FieldRead("target_heart_rate_value"),
    ),
    "perceivedExertion": ColumnSemantics(
        name="perceivedExertion",
        realized=FieldRead("perceived_exertion"),
        planned=FieldRead("target_rpe"),
    ),
}

PLANNED_DATE_READ = FieldRead("planned_date")


def resolve_column(column: str, planned_date_as_date: bool = False) -> ColumnSemantics:
    """Look up a column's semantics.

    When ``planned_date_as_date`` is set, planned sessions sort on their
    planned date under the "date" column instead of sorting last.

    Raises:
        KeyError: If the column is not sortable (SortSpec parsing already
            drops unknown columns, so callers never hit this with parsed input)
    """
    semantics = SORTABLE_COLUMNS[column]
    if planned_date_as_date and column == "date":
        return replace(semantics, planned=PLANNED_DATE_READ)
    return semantics
