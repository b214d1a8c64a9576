"""
Tests for the shared date helpers: weekday derivation and clinic-zone instants.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.config import settings
from app.utils.dates import (
    combine_local,
    from_db_utc,
    parse_date,
    parse_time,
    parse_weekday,
    to_utc,
    weekday_of,
)


class TestWeekdays:
    """Weekday numbering is date.weekday(): 0=Monday"""

    def test_weekday_of_known_dates(self):
        assert weekday_of(date(2024, 1, 1)) == 0  # Monday
        assert weekday_of(date(2024, 1, 7)) == 6  # Sunday

    @pytest.mark.parametrize("name,expected", [
        ("lunes", 0),
        ("Martes", 1),
        ("miércoles", 2),
        ("miercoles", 2),
        ("SÁBADO", 5),
        ("domingo", 6),
        ("3", 3),
        (4, 4),
    ])
    def test_parse_weekday(self, name, expected):
        assert parse_weekday(name) == expected

    @pytest.mark.parametrize("value", ["funday", "", 7, -1])
    def test_parse_weekday_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            parse_weekday(value)


class TestParsing:

    def test_parse_date_and_time(self):
        assert parse_date("2024-06-03") == date(2024, 6, 3)
        assert parse_time("09:30") == time(9, 30)
        assert parse_time("09:30:15") == time(9, 30, 15)

    def test_parse_passes_through_values(self):
        assert parse_date(date(2024, 6, 3)) == date(2024, 6, 3)
        assert parse_time(time(8)) == time(8)

    def test_parse_time_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_time("nueve")


class TestClinicZone:

    def test_combine_local_is_aware_in_clinic_zone(self):
        moment = combine_local(date(2024, 6, 3), time(9, 0))
        assert moment.tzinfo is not None
        assert str(moment.tzinfo) == settings.TIMEZONE

    def test_buenos_aires_offset(self):
        moment = combine_local(date(2024, 6, 3), time(9, 0))
        assert moment.utcoffset() == timedelta(hours=-3)
        assert to_utc(moment) == datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)

    def test_from_db_utc_attaches_utc_to_naive_values(self):
        naive = datetime(2024, 6, 3, 12, 0)
        assert from_db_utc(naive) == datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)

    def test_from_db_utc_converts_aware_values(self):
        aware = combine_local(date(2024, 6, 3), time(9, 0))
        assert from_db_utc(aware).tzinfo == timezone.utc
        assert from_db_utc(aware) == aware
