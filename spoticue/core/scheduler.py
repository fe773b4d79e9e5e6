#!/usr/bin/env python3
"""
Time-of-day utilities for daily schedules.
"""

from __future__ import annotations

import datetime
from typing import Optional, Tuple

from ..utils.timezone import get_local_timezone


def _coerce_time_components(schedule_time: str) -> Optional[Tuple[int, int]]:
    """Return (hour, minute) tuple if ``schedule_time`` is valid."""
    try:
        hour, minute = map(int, schedule_time.split(":"))
    except (ValueError, AttributeError):
        return None
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return hour, minute
    return None


def _reference_now(reference: Optional[datetime.datetime]) -> datetime.datetime:
    if reference is not None:
        return reference
    return datetime.datetime.now(tz=get_local_timezone())


def occurrence_on(schedule_time: str, day: datetime.date, tzinfo: Optional[datetime.tzinfo]) -> Optional[datetime.datetime]:
    """Return the datetime ``schedule_time`` falls on for ``day``."""
    components = _coerce_time_components(schedule_time)
    if components is None:
        return None
    hour, minute = components
    target = datetime.datetime(day.year, day.month, day.day, hour, minute, tzinfo=tzinfo)
    if tzinfo is None:
        return target
    # Adjust for DST gaps/overlaps by round-tripping through UTC
    return target.astimezone(datetime.timezone.utc).astimezone(tzinfo)


def next_occurrence(schedule_time: str, reference: Optional[datetime.datetime] = None) -> Optional[datetime.datetime]:
    """Return the next datetime strictly after ``reference`` matching ``schedule_time``."""
    now = _reference_now(reference)
    target = occurrence_on(schedule_time, now.date(), now.tzinfo)
    if target is None:
        return None
    if target <= now:
        target = occurrence_on(schedule_time, now.date() + datetime.timedelta(days=1), now.tzinfo)
    return target


def is_in_trigger_window(schedule_time: str, now: datetime.datetime, window_seconds: int) -> bool:
    """True during the first ``window_seconds`` of the schedule's minute."""
    return now.strftime("%H:%M") == schedule_time and now.second < window_seconds


def missed_occurrence(
    schedule_time: str,
    last_tick: datetime.datetime,
    now: datetime.datetime,
    grace_seconds: float,
) -> Optional[datetime.datetime]:
    """Latest occurrence inside ``(last_tick, now]`` that is at most ``grace_seconds`` old."""
    for day in (now.date(), now.date() - datetime.timedelta(days=1)):
        occurrence = occurrence_on(schedule_time, day, now.tzinfo)
        if occurrence is None:
            return None
        if last_tick < occurrence <= now and (now - occurrence).total_seconds() <= grace_seconds:
            return occurrence
    return None


def format_time_until(schedule_time: str, reference: Optional[datetime.datetime] = None) -> str:
    """Return human-readable delta until the next occurrence."""
    now = _reference_now(reference)
    next_dt = next_occurrence(schedule_time, now)
    if not next_dt:
        return "Invalid time"

    delta = next_dt - now
    days = delta.days
    hours, remainder = divmod(delta.seconds, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"in {days} day{'s' if days != 1 else ''}, {hours}h {minutes}m"
    if hours > 0:
        return f"in {hours}h {minutes}m"
    return f"in {minutes}m"
