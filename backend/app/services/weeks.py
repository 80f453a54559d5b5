from datetime import date, datetime, timedelta

from app.core.config import settings
from app.core.errors import ValidationError

SUNDAY = 0


def school_today() -> date:
    """Today's calendar date in the school's configured timezone."""
    return datetime.now(settings.school_zone).date()


def _calendar_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        # Keep the wall-clock date as given, never convert between zones.
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if "T" in raw:
            raw = raw.split("T", 1)[0]
        try:
            return date.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationError(
                f"week_of must be a YYYY-MM-DD date, got {value!r}", field="week_of"
            ) from exc
    raise ValidationError("week_of must be a date", field="week_of")


def day_of_week(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def week_of(value: date | datetime | str | None = None) -> date:
    """Return the Monday on or before `value` (today when omitted)."""
    day = school_today() if value is None else _calendar_date(value)
    dow = day_of_week(day)
    offset = 6 if dow == SUNDAY else dow - 1
    return day - timedelta(days=offset)
