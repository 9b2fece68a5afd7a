"""Recurring batch check timing (core domain)."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Optional

from core.config import ScheduleConfig
from core.errors import ValidationError

FREQUENCIES = ("daily", "weekly", "monthly")


def _parse_time(value: str) -> tuple[int, int]:
    hours, sep, minutes = value.strip().partition(":")
    try:
        hour, minute = int(hours), int(minutes if sep else "0")
    except ValueError as exc:
        raise ValidationError(f"Schedule time must be HH:MM, got {value!r}") from exc
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValidationError(f"Schedule time out of range: {value!r}")
    return hour, minute


def parse_next_run(schedule: ScheduleConfig) -> Optional[datetime]:
    if not schedule.next_run:
        return None
    try:
        return datetime.fromisoformat(schedule.next_run)
    except ValueError as exc:
        raise ValidationError(f"next_run must be an ISO timestamp, got {schedule.next_run!r}") from exc


def should_run_now(schedule: ScheduleConfig, now: datetime) -> bool:
    """Return True when the schedule is enabled and its next run is due."""

    if not schedule.enabled:
        return False
    next_run = parse_next_run(schedule)
    if next_run is None:
        return True
    if (next_run.tzinfo is None) != (now.tzinfo is None):
        # Compare naive timestamps as local wall-clock time.
        next_run = next_run.replace(tzinfo=None)
        now = now.replace(tzinfo=None)
    return now >= next_run


def _add_month(moment: datetime) -> datetime:
    year = moment.year + (1 if moment.month == 12 else 0)
    month = 1 if moment.month == 12 else moment.month + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_next_run(schedule: ScheduleConfig, now: datetime) -> datetime:
    """Return the next run at the configured time after one period."""

    if schedule.frequency not in FREQUENCIES:
        raise ValidationError(f"frequency must be one of {', '.join(FREQUENCIES)}")
    hour, minute = _parse_time(schedule.time)
    anchor = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if schedule.frequency == "daily":
        return anchor + timedelta(days=1)
    if schedule.frequency == "weekly":
        return anchor + timedelta(days=7)
    return _add_month(anchor)
