from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.core.config import settings
from app.core.errors import ValidationError
from app.services import weeks
from app.services.weeks import day_of_week, school_today, week_of


def test_weekday_maps_to_preceding_monday():
    # 2024-01-04 is a Thursday
    assert week_of(date(2024, 1, 4)) == date(2024, 1, 1)


def test_sunday_maps_to_monday_six_days_earlier():
    assert week_of(date(2024, 1, 7)) == date(2024, 1, 1)


def test_monday_is_unchanged():
    assert week_of(date(2024, 3, 4)) == date(2024, 3, 4)


def test_every_day_of_a_week_shares_one_monday():
    monday = date(2024, 1, 8)
    for offset in range(7):
        assert week_of(monday + timedelta(days=offset)) == monday
    assert week_of(monday + timedelta(days=7)) == monday + timedelta(days=7)


def test_result_is_always_a_monday_and_idempotent():
    start = date(2023, 12, 1)
    for offset in range(120):
        day = start + timedelta(days=offset)
        normalized = week_of(day)
        assert normalized.weekday() == 0
        assert week_of(normalized) == normalized
        assert 0 <= (day - normalized).days <= 6


def test_string_and_date_inputs_agree():
    assert week_of("2024-01-10") == week_of(date(2024, 1, 10)) == date(2024, 1, 8)


def test_iso_datetime_string_uses_its_own_calendar_date():
    # Late Sunday evening with a negative offset still belongs to the Sunday.
    assert week_of("2024-03-10T23:30:00-08:00") == date(2024, 3, 4)


def test_aware_datetime_keeps_wall_clock_date():
    late_sunday = datetime(2024, 3, 10, 23, 30, tzinfo=ZoneInfo("America/Los_Angeles"))
    assert week_of(late_sunday) == date(2024, 3, 4)


def test_dst_transition_weeks_do_not_drift():
    # US spring-forward (2024-03-10) and fall-back (2024-11-03) are Sundays.
    assert week_of(date(2024, 3, 10)) == date(2024, 3, 4)
    assert week_of(date(2024, 3, 11)) == date(2024, 3, 11)
    assert week_of(date(2024, 11, 3)) == date(2024, 10, 28)


def test_year_and_leap_day_boundaries():
    assert week_of(date(2025, 1, 1)) == date(2024, 12, 30)
    assert week_of(date(2024, 2, 29)) == date(2024, 2, 26)


def test_malformed_string_raises_validation_error():
    with pytest.raises(ValidationError) as excinfo:
        week_of("01/04/2024")
    assert excinfo.value.field == "week_of"
    assert excinfo.value.status_code == 400


def test_day_of_week_is_sunday_based():
    assert day_of_week(date(2024, 1, 7)) == 0
    assert day_of_week(date(2024, 1, 8)) == 1
    assert day_of_week(date(2024, 1, 13)) == 6


def test_missing_value_defaults_to_school_today(monkeypatch):
    monkeypatch.setattr(weeks, "school_today", lambda: date(2024, 3, 6))
    assert week_of() == date(2024, 3, 4)


def test_school_today_uses_configured_timezone(monkeypatch):
    monkeypatch.setattr(settings, "school_timezone", "Pacific/Kiritimati")
    expected = datetime.now(timezone.utc).astimezone(ZoneInfo("Pacific/Kiritimati")).date()
    assert school_today() == expected
