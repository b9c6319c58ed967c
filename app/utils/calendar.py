"""Monday-aligned training weeks."""

from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from typing import TypeVar

T = TypeVar("T")


def week_start(d: date | datetime) -> date:
    """Return Monday of the calendar week containing d."""
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=d.weekday())


def group_by_week(items: Iterable[T], when: Callable[[T], date | datetime]) -> list[list[T]]:
    """Bucket items by the Monday of their week, earliest week first.

    Weeks with no items are skipped, so the position of a bucket in the
    result is its relative week index.
    """
    buckets: dict[date, list[T]] = defaultdict(list)
    for item in items:
        buckets[week_start(when(item))].append(item)
    return [buckets[monday] for monday in sorted(buckets)]
