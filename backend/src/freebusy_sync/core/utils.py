# Date/time utilities for the free/busy engine
# Engine datetimes are naive UTC; zone handling goes through dateutil

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from dateutil import tz as dateutil_tz

from .date_range import DateTimeRange
from .errors import MalformedRequestError, TimeZoneError

logger = logging.getLogger(__name__)

GOOGLE_DATE_FORMAT = "%Y%m%d"
GOOGLE_DATE_TIME_FORMAT = "%Y%m%dT%H%M%S"


# ============================================================================
# TIME ZONES
# ============================================================================


def get_time_zone(name: str) -> tzinfo:
    """Resolve an Olson time zone name such as 'America/Los_Angeles'."""
    zone = dateutil_tz.gettz(name.strip()) if name and name.strip() else None
    if zone is None:
        raise TimeZoneError(name)
    return zone


def to_utc_naive(value: datetime, zone: Optional[tzinfo] = None) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted directly. Naive values are interpreted in
    ``zone`` when given and assumed to be UTC already otherwise.
    """
    if value.tzinfo is None:
        if zone is None:
            return value
        value = value.replace(tzinfo=zone)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_utc_naive(value: datetime, zone: tzinfo) -> datetime:
    """Convert a naive UTC datetime to naive local time in ``zone``."""
    return value.replace(tzinfo=timezone.utc).astimezone(zone).replace(tzinfo=None)


# ============================================================================
# MONTH ARITHMETIC
# ============================================================================


def start_of_month(value: datetime) -> datetime:
    return datetime(value.year, value.month, 1)


def start_of_next_month(value: datetime) -> datetime:
    if value.month == 12:
        return datetime(value.year + 1, 1, 1)
    return datetime(value.year, value.month + 1, 1)


def round_range_to_interval(range_: DateTimeRange, minutes: int) -> DateTimeRange:
    """Round the start down and the end up to a multiple of ``minutes``."""
    if minutes <= 0:
        raise ValueError("interval must be positive")

    def floor(value: datetime) -> datetime:
        value = value.replace(second=0, microsecond=0)
        return value - timedelta(minutes=value.minute % minutes)

    start = floor(range_.start)
    end = floor(range_.end)
    # the final slot before datetime.max cannot be rounded up
    if end != range_.end and datetime.max - end >= timedelta(minutes=minutes):
        end += timedelta(minutes=minutes)

    return DateTimeRange(start, end)


# ============================================================================
# GOOGLE LOOKUP DATE FORMATS
# ============================================================================


def parse_google_date(value: str) -> datetime:
    """
    Parse ``yyyyMMdd`` or ``yyyyMMddTHHmmss``.

    Raises:
        MalformedRequestError: the value matches neither format
    """
    value = value.strip()
    for fmt in (GOOGLE_DATE_TIME_FORMAT, GOOGLE_DATE_FORMAT):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise MalformedRequestError(f"Invalid date: {value!r}")


def format_google_date(value: datetime) -> str:
    return value.strftime(GOOGLE_DATE_FORMAT)


def format_google_date_time(value: datetime) -> str:
    # strftime rejects years below 1000 on some platforms
    return (
        f"{value.year:04d}{value.month:02d}{value.day:02d}"
        f"T{value.hour:02d}{value.minute:02d}{value.second:02d}"
    )
