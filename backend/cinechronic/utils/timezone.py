"""
Timezone utilities for CineChronic.
Provides consistent UTC datetime handling plus the day-key / local-hour pair
used by the daily recommendation refresh.
"""
from datetime import datetime, timezone
from typing import Optional
import logging
import zoneinfo

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.
    Replacement for deprecated datetime.utcnow().
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is UTC and timezone-aware.
    If timezone-naive, assumes it's already UTC and adds UTC timezone.
    If timezone-aware, converts to UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Assume naive datetime is already UTC
        return dt.replace(tzinfo=timezone.utc)
    else:
        return dt.astimezone(timezone.utc)


def day_key(dt: Optional[datetime] = None) -> str:
    """UTC calendar date of ``dt`` as YYYY-MM-DD."""
    return ensure_utc(dt or utc_now()).date().isoformat()


def local_hour(dt: Optional[datetime] = None, tz_name: str = "") -> int:
    """
    Hour (0-23) of ``dt`` in ``tz_name``.
    An empty name means the server's local timezone; an unknown name logs a
    warning and falls back to UTC.
    """
    aware = ensure_utc(dt or utc_now())
    if not tz_name:
        return aware.astimezone().hour
    try:
        zone = zoneinfo.ZoneInfo(tz_name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{tz_name}', using UTC")
        return aware.hour
    return aware.astimezone(zone).hour


def format_iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """
    Format datetime as ISO string in UTC.
    Returns None if datetime is None.
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
