from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.config import ScheduleConfig
from core.errors import ValidationError
from core.schedule import compute_next_run, should_run_now


def test_disabled_schedule_never_runs() -> None:
    assert not should_run_now(ScheduleConfig(enabled=False), datetime(2024, 1, 1))


def test_missing_next_run_is_due() -> None:
    assert should_run_now(ScheduleConfig(enabled=True), datetime(2024, 1, 1))


def test_next_run_comparison() -> None:
    schedule = ScheduleConfig(enabled=True, next_run="2024-03-01T09:00:00")

    assert not should_run_now(schedule, datetime(2024, 3, 1, 8, 59))
    assert should_run_now(schedule, datetime(2024, 3, 1, 9, 0))
    assert should_run_now(schedule, datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


def test_compute_next_run_per_frequency() -> None:
    now = datetime(2024, 1, 31, 14, 5, 33)

    assert compute_next_run(ScheduleConfig(frequency="daily", time="09:00"), now) == datetime(2024, 2, 1, 9, 0)
    assert compute_next_run(ScheduleConfig(frequency="weekly", time="09:00"), now) == datetime(2024, 2, 7, 9, 0)
    # Month ends clamp to the shorter month.
    assert compute_next_run(ScheduleConfig(frequency="monthly", time="06:30"), now) == datetime(2024, 2, 29, 6, 30)
    assert compute_next_run(ScheduleConfig(frequency="monthly"), datetime(2024, 12, 15)) == datetime(2025, 1, 15, 9, 0)


@pytest.mark.parametrize(
    "schedule",
    [
        ScheduleConfig(frequency="hourly"),
        ScheduleConfig(time="25:00"),
        ScheduleConfig(time="nine"),
    ],
)
def test_invalid_schedule_is_rejected(schedule: ScheduleConfig) -> None:
    with pytest.raises(ValidationError):
        compute_next_run(schedule, datetime(2024, 1, 1))


def test_invalid_next_run_is_rejected() -> None:
    with pytest.raises(ValidationError):
        should_run_now(ScheduleConfig(enabled=True, next_run="soon"), datetime(2024, 1, 1))
