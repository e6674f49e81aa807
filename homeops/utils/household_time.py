"""
Timestamp utilities for the household's civil time zone.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .config import config


def household_zone(tz_name: Optional[str] = None) -> ZoneInfo:
    """Return the household's IANA time zone (daylight-saving aware)."""
    return ZoneInfo(tz_name or config.household.timezone)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_local(moment: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """Convert an aware datetime to household local time.

    Args:
        moment: Timezone-aware datetime (uses current time if None)
        tz_name: Override for the configured household timezone

    Returns:
        Local datetime

    Raises:
        ValueError: If moment is naive
    """
    if moment is None:
        moment = utc_now()
    if moment.tzinfo is None:
        raise ValueError('Naive datetime cannot be placed in household time')
    return moment.astimezone(household_zone(tz_name))


def local_date_key(moment: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """Local calendar date as YYYY-MM-DD, used as a daily period key."""
    return to_local(moment, tz_name).strftime('%Y-%m-%d')


def local_day_and_hour(moment: datetime, tz_name: Optional[str] = None) -> Tuple[int, int]:
    """Local weekday (Monday=0) and hour of day."""
    local = to_local(moment, tz_name)
    return local.weekday(), local.hour


def is_quiet_hours(moment: datetime, start_hour: int, end_hour: int, tz_name: Optional[str] = None) -> bool:
    """Check whether the local hour falls in [start_hour, end_hour).

    The window wraps midnight when start_hour > end_hour.
    """
    hour = to_local(moment, tz_name).hour
    if start_hour == end_hour:
        return False
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def to_epoch_seconds(moment: datetime) -> int:
    return int(moment.timestamp())


def to_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()
