"""Heart-rate target parsing."""

from __future__ import annotations

import re

_RANGE_RE = re.compile(r"(\d+)\s*-\s*(\d+)")
_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


def parse_hr_value(value: str | float | None) -> float | None:
    """Parse a heart-rate target into a single bpm value.

    Targets are free text: ``"150"``, ``"150-160"`` (midpoint is used) or
    something non-numeric like ``"Z2"``, which yields None.
    """
    if value is None:
        return None

    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None

    range_match = _RANGE_RE.search(value)
    if range_match:
        low, high = int(range_match.group(1)), int(range_match.group(2))
        return (low + high) / 2

    single = _LEADING_INT_RE.match(value)
    if not single:
        return None
    bpm = int(single.group(1))
    return float(bpm) if bpm > 0 else None
