"""Session timestamps are stored as naive UTC."""

from datetime import datetime, timezone


def to_naive_utc(dt: datetime | None) -> datetime | None:
    """Normalize an incoming timestamp for storage.

    Aware values are converted to UTC; naive values are taken to be UTC
    already and returned unchanged.
    """
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
