from __future__ import annotations
from datetime import date as _date
from typing import Any, cast

from . import canon, utils
from .types import PeriodCode


def is_holiday(date: Any) -> bool:
    """True when the month/day is one of the fixed national holidays (any year)."""
    d = utils.parse_date(date)
    if d is None:
        return False
    return (d.month, d.day) in canon.NATIONAL_HOLIDAYS


def is_weekend(date: Any) -> bool:
    d = utils.parse_date(date)
    if d is None:
        return False
    return d.weekday() >= 5  # Sat=5, Sun=6


def classify(date: str | _date, time: str) -> PeriodCode:
    """
    Assign a tariff period to a reading from its calendar date and time of day.

    Precedence:
      1. fixed national holiday -> P3
      2. Saturday / Sunday      -> P3
      3. hour table (0-24); hours missing from the table -> P3

    Never raises: an unparseable date or time falls back to P3.
    """
    d = utils.parse_date(date)
    if d is None:
        return cast(PeriodCode, canon.FALLBACK_PERIOD)
    if (d.month, d.day) in canon.NATIONAL_HOLIDAYS:
        return "P3"
    if d.weekday() >= 5:
        return "P3"

    hour = utils.parse_hour(time)
    if hour is None:
        return cast(PeriodCode, canon.FALLBACK_PERIOD)
    return cast(PeriodCode, canon.HOUR_TO_PERIOD.get(hour, canon.FALLBACK_PERIOD))
