"""Snap timestamps to the half-hour, hour and 5-minute grids.

All functions return a new datetime with seconds and microseconds cleared.
Aware datetimes in a pytz zone are normalised after arithmetic so a result
that crosses a DST transition keeps the right offset.
"""
from datetime import datetime, timedelta


def normalize_tz(value: datetime) -> datetime:
    tz = value.tzinfo
    if tz is not None and hasattr(tz, "normalize"):
        return tz.normalize(value)
    return value


def round_up_to_hour(value: datetime) -> datetime:
    return normalize_tz(value.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1))


def round_to_half_hour(value: datetime) -> datetime:
    # :00-:29 -> :30 of the same hour, :30-:59 -> :00 of the next hour
    if value.minute < 30:
        return value.replace(minute=30, second=0, microsecond=0)
    return round_up_to_hour(value)


def round_to_nearest_minutes(value: datetime, step: int) -> datetime:
    nearest = int(value.minute / step + 0.5) * step
    base = value.replace(minute=0, second=0, microsecond=0)
    return normalize_tz(base + timedelta(minutes=nearest))


def round_to_nearest_5_min(value: datetime) -> datetime:
    return round_to_nearest_minutes(value, 5)
