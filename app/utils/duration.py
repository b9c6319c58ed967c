"""Duration and pace string helpers.

Durations and paces are entered as ``MM:SS`` or ``HH:MM:SS`` strings. Sorting
and storage work on whole seconds, so every place that needs a numeric value
goes through ``parse_duration``.
"""

from __future__ import annotations

import math


def _parse_part(part: str) -> int | None:
    stripped = part.strip()
    if not stripped.isdigit():
        return None
    return int(stripped)


def parse_duration(value: str | None) -> int | None:
    """Parse a ``MM:SS`` or ``HH:MM:SS`` string into seconds.

    Args:
        value: Duration string (e.g. "05:30", "1:02:03")

    Returns:
        Total seconds, or None when the string is empty or malformed
    """
    if not value or not isinstance(value, str):
        return None

    parts = [_parse_part(p) for p in value.strip().split(":")]
    if any(p is None for p in parts):
        return None

    if len(parts) == 2:
        minutes, seconds = parts
        if seconds >= 60:
            return None
        return minutes * 60 + seconds

    if len(parts) == 3:
        hours, minutes, seconds = parts
        if minutes >= 60 or seconds >= 60:
            return None
        return hours * 3600 + minutes * 60 + seconds

    return None


def format_duration(seconds: float | None) -> str | None:
    """Format seconds as ``MM:SS`` below one hour and ``HH:MM:SS`` above."""
    if seconds is None:
        return None
    if seconds < 0 or not math.isfinite(seconds):
        return "00:00"

    total = round(seconds)
    if total < 3600:
        return f"{total // 60:02d}:{total % 60:02d}"
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"
