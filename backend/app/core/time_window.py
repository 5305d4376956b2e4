"""Booking time-window policy.

Slot dates and start times are stored time-zone naive and interpreted as wall
clock time in the configured ``TIMEZONE``. Mentors must open (and close) slots
at least 48 hours ahead, while students may only book a slot inside the 48
hours leading up to it.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings
from .constants import BOOKING_WINDOW, SLOT_DURATION, SLOT_START_MINUTES

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def _zone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def now() -> datetime:
    return datetime.now(_zone())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_time(value: str) -> time:
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError("Time must be in HH:MM format (24-hour)")
    return time(int(match.group(1)), int(match.group(2)))


def is_valid_start_time(value: str) -> bool:
    try:
        parsed = parse_time(value)
    except ValueError:
        return False
    return parsed.minute in SLOT_START_MINUTES


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def calculate_end_time(start_time: str) -> str:
    """Return ``start_time`` plus one slot duration as ``HH:MM``.

    Only the clock wraps: ``"23:30"`` gives ``"00:00"`` and the caller's date is
    left untouched.
    """
    start = parse_time(start_time)
    end = datetime.combine(date.min, start) + SLOT_DURATION
    return format_time(end.time())


def slot_datetime(slot_date: date, start_time: str) -> datetime:
    return datetime.combine(slot_date, parse_time(start_time), tzinfo=_zone())


def _elapsed_since_start(slot_date: date, start_time: str) -> timedelta:
    # Both sides in UTC: aware datetimes sharing a zone subtract as wall clock
    started_at = slot_datetime(slot_date, start_time).astimezone(timezone.utc)
    return now().astimezone(timezone.utc) - started_at


def time_until(slot_date: date, start_time: str) -> timedelta:
    return -_elapsed_since_start(slot_date, start_time)


def is_at_least_48_hours_away(slot_date: date, start_time: str) -> bool:
    return time_until(slot_date, start_time) >= BOOKING_WINDOW


def is_within_48_hours(slot_date: date, start_time: str) -> bool:
    remaining = time_until(slot_date, start_time)
    return timedelta(0) < remaining <= BOOKING_WINDOW


def has_started(slot_date: date, start_time: str) -> bool:
    return _elapsed_since_start(slot_date, start_time) > timedelta(0)


def has_ended(slot_date: date, start_time: str) -> bool:
    return _elapsed_since_start(slot_date, start_time) >= SLOT_DURATION


__all__ = [
    "now",
    "utc_now",
    "parse_time",
    "is_valid_start_time",
    "format_time",
    "calculate_end_time",
    "slot_datetime",
    "time_until",
    "is_at_least_48_hours_away",
    "is_within_48_hours",
    "has_started",
    "has_ended",
]
