"""
Wall-clock date/time handling for booking bounds.

A booking time is what the customer or operator typed ("2025-06-01", "20:00") and must read back
with the same digits. Persisted values are literal strings with a fixed ``+00:00`` marker that
carries no meaning; decoding works on the digits only and never builds a timezone-aware instant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import StrEnum
from typing import Optional

MINUTES_PER_DAY = 24 * 60
FIXED_OFFSET = "+00:00"

_DATE_INPUT = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
_TIME_INPUT = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?\s*$")
_PERSISTED_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_PERSISTED_TIME = re.compile(r"\d{4}-\d{2}-\d{2}[T ](\d{2}):(\d{2})")


class BoundaryRole(StrEnum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class WallClock:
    day: date
    at: time

    @property
    def minute_of_day(self) -> int:
        return to_minutes(self.at)

    def __str__(self) -> str:
        return f"{self.day.isoformat()} {format_time_of_day(self.at)}"


def parse_date(value: str | date | None) -> Optional[date]:
    """Parse a typed ``YYYY-MM-DD`` value. Returns None when it is not a real calendar day."""
    if value is None:
        return None
    if isinstance(value, datetime):
        # An instant is not a wall-clock date; refuse rather than guess which zone it meant.
        return None
    if isinstance(value, date):
        return value
    match = _DATE_INPUT.match(value)
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_time_of_day(value: str | time | None) -> Optional[time]:
    """Parse a typed ``HH:MM`` (24h) value; seconds are accepted and dropped."""
    if value is None:
        return None
    if isinstance(value, time):
        return time(value.hour, value.minute)
    match = _TIME_INPUT.match(value)
    if match is None:
        return None
    return _time_or_none(int(match.group(1)), int(match.group(2)))


def format_time_of_day(at: time) -> str:
    return f"{at.hour:02d}:{at.minute:02d}"


def to_minutes(at: time) -> int:
    return at.hour * 60 + at.minute


def from_minutes(minutes: int) -> time:
    minutes %= MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def add_duration(at: time, minutes: int) -> time:
    """Time of day ``minutes`` after ``at``; wraps past midnight."""
    return from_minutes(to_minutes(at) + minutes)


def crosses_midnight(start: time, end: time) -> bool:
    """True when an end time of day belongs to the calendar day after its start."""
    return end < start or (start.hour >= 22 and end.hour <= 6)


def encode(
    day: str | date,
    at: str | time,
    role: BoundaryRole = BoundaryRole.START,
    paired_start: str | time | None = None,
) -> Optional[str]:
    """
    Build the persisted literal for a wall-clock value, e.g. ``2025-01-15T22:00:00+00:00``.

    An end boundary paired with a start whose time of day it precedes is moved to the next calendar
    day. Returns None when the date or time digits are malformed.
    """
    parsed_day = parse_date(day)
    parsed_at = parse_time_of_day(at)
    if parsed_day is None or parsed_at is None:
        return None

    if role == BoundaryRole.END and paired_start is not None:
        start_at = parse_time_of_day(paired_start)
        if start_at is None:
            return None
        if crosses_midnight(start_at, parsed_at):
            try:
                parsed_day = parsed_day + timedelta(days=1)
            except OverflowError:
                return None
    return _format(parsed_day, parsed_at)


def encode_wall_clock(value: WallClock) -> str:
    return _format(value.day, value.at)


def decode(persisted: Optional[str]) -> Optional[WallClock]:
    day = decode_date(persisted)
    at = decode_time_of_day(persisted)
    if day is None or at is None:
        return None
    return WallClock(day=day, at=at)


def decode_date(persisted: Optional[str]) -> Optional[date]:
    if not persisted:
        return None
    match = _PERSISTED_DATE.search(persisted)
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def decode_time_of_day(persisted: Optional[str]) -> Optional[time]:
    if not persisted:
        return None
    match = _PERSISTED_TIME.search(persisted)
    if match is None:
        return None
    return _time_or_none(int(match.group(1)), int(match.group(2)))


def _format(day: date, at: time) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}T{at.hour:02d}:{at.minute:02d}:00{FIXED_OFFSET}"


def _time_or_none(hour: int, minute: int) -> Optional[time]:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)
