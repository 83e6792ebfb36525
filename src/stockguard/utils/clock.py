"""Time helpers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how SQLite round-trips values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
