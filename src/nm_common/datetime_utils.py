"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def to_unix(ts: datetime) -> int:
    """Whole seconds since the epoch, the unit notes expose as created_at."""
    return int(ts.timestamp())
