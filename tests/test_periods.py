"""Tariff period classification: holidays, weekends and the weekday hour table."""

from datetime import date

import pytest

from datadislogic import periods

HOLIDAYS = [
    "2025/01/01",
    "2025/01/06",
    "2025/03/29",
    "2025/05/01",
    "2025/08/15",
    "2025/10/12",
    "2025/11/01",
    "2025/12/06",
    "2025/12/25",
]

WEEKDAY = "2024/03/01"  # Friday, not a holiday


@pytest.mark.parametrize("day", HOLIDAYS)
@pytest.mark.parametrize("time", ["00:00", "09:00", "13:00", "20:00", "24:00"])
def test_holidays_are_off_peak_at_any_time(day, time):
    assert periods.classify(day, time) == "P3"


def test_holidays_ignore_year():
    assert periods.classify("2019/12/25", "13:00") == "P3"
    assert periods.classify("2031/08/15", "20:00") == "P3"
    assert periods.is_holiday("1999/01/06")
    assert not periods.is_holiday("2024/01/07")


@pytest.mark.parametrize("day", ["2024/03/02", "2024/03/03"])  # Sat, Sun
@pytest.mark.parametrize("time", ["11:00", "13:00", "19:00", "23:00", "24:00"])
def test_weekends_are_off_peak(day, time):
    assert periods.classify(day, time) == "P3"
    assert periods.is_weekend(day)


def test_weekday_peak_hours():
    for t in ["11:00", "12:00", "13:00", "14:00", "19:00", "20:00", "21:00", "22:00", "22:59"]:
        assert periods.classify(WEEKDAY, t) == "P1", t


def test_weekday_mid_hours():
    for t in ["09:00", "10:00", "10:59", "15:00", "16:00", "17:00", "18:00", "23:00", "24:00"]:
        assert periods.classify(WEEKDAY, t) == "P2", t


def test_weekday_off_peak_hours():
    for t in ["00:00", "01:00", "05:00", "07:59", "08:00", "08:59"]:
        assert periods.classify(WEEKDAY, t) == "P3", t


def test_midnight_as_00_and_24_are_distinct():
    """'00:00' and '24:00' name the same instant but map to different periods."""
    assert periods.classify(WEEKDAY, "00:00") == "P3"
    assert periods.classify(WEEKDAY, "24:00") == "P2"


def test_hours_outside_table_fall_back_to_p3():
    assert periods.classify(WEEKDAY, "25:00") == "P3"
    assert periods.classify(WEEKDAY, "99:00") == "P3"


def test_accepts_date_objects():
    assert periods.classify(date(2024, 3, 1), "12:00") == "P1"
    assert periods.classify(date(2024, 3, 2), "12:00") == "P3"


@pytest.mark.parametrize(
    "day,time",
    [("not-a-date", "12:00"), ("2024/13/40", "12:00"), (WEEKDAY, "noon"), (None, None)],
)
def test_classify_never_raises(day, time):
    assert periods.classify(day, time) == "P3"
