"""
Date helpers shared by the slot validator, the lifecycle and the scheduler.

Weekdays are always taken from the calendar date itself (``date.weekday()``,
0=Monday) and wall-clock instants are always built in ``settings.TIMEZONE``.
"""

import unicodedata
from datetime import date, datetime, time, timezone
from typing import Union
from zoneinfo import ZoneInfo

from app.config import settings

WEEKDAY_NAMES = ["lunes", "martes", "miercoles", "jueves", "viernes", "sabado", "domingo"]


def clinic_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    return datetime.now(clinic_tz())


def weekday_of(day: date) -> int:
    return day.weekday()


def _strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(c for c in normalized if not unicodedata.combining(c))


def parse_weekday(value: Union[str, int]) -> int:
    """Accept 'lunes'..'domingo' (any case, accents optional) or 0..6."""
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"weekday out of range: {value}")

    key = _strip_accents(value.strip().lower())
    if key.isdigit():
        return parse_weekday(int(key))
    if key not in WEEKDAY_NAMES:
        raise ValueError(f"unknown weekday: {value}")
    return WEEKDAY_NAMES.index(key)


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def parse_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(value.strip())


def combine_local(day: date, at: time) -> datetime:
    """Aware datetime for a calendar date and time-of-day in the clinic zone."""
    return datetime.combine(day, at, tzinfo=clinic_tz())


def to_utc(moment: datetime) -> datetime:
    return moment.astimezone(timezone.utc)


def from_db_utc(moment: datetime) -> datetime:
    """Columns declared timezone-aware come back naive on SQLite; they hold UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
