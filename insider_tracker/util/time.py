from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def window_start_iso(days: int, as_of: date | None = None) -> str:
    """First ISO date (inclusive) of a trailing window of `days` calendar days ending at as_of."""
    end = as_of or utc_today()
    return (end - timedelta(days=int(days))).isoformat()
