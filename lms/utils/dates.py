from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def ensure_tz(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    return ensure_tz(now or datetime.now(timezone.utc))


def is_past_due(due_date: datetime, now: Optional[datetime] = None) -> bool:
    return resolve_now(now) > ensure_tz(due_date)


def is_due_within(due_date: datetime, days: int, now: Optional[datetime] = None) -> bool:
    """True when ``now <= due_date <= now + days``."""
    now = resolve_now(now)
    due = ensure_tz(due_date)
    return now <= due <= now + timedelta(days=days)
