# datadislogic/utils.py
from __future__ import annotations
from datetime import date as _date, datetime
from typing import Any, Optional

import pandas as pd

from . import canon


def parse_date(value: Any) -> Optional[_date]:
    """Parse a 'YYYY/MM/DD' string (or pass through a date); None if unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, _date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), canon.DATE_FORMAT).date()
    except ValueError:
        return None


def parse_hour(value: Any) -> Optional[int]:
    """
    Integer hour component of an 'HH:MM' string.

    '24:00' is kept as 24, not rolled over to 0.
    """
    if not isinstance(value, str):
        return None
    head = value.strip().split(":", 1)[0]
    if not head.isdigit():
        return None
    return int(head)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def month_key(d: _date) -> str:
    """YYYY/MM key for a calendar date."""
    return f"{d.year:04d}/{d.month:02d}"


def month_period(key: str) -> pd.Period:
    year, month = key.split("/")
    return pd.Period(year=int(year), month=int(month), freq="M")


def period_key(p: pd.Period) -> str:
    return f"{p.year:04d}/{p.month:02d}"


def consecutive_months(start_key: str, n: int = canon.WINDOW_MONTHS) -> list[str]:
    """n consecutive YYYY/MM keys starting at start_key (year rollover handled)."""
    start = month_period(start_key)
    return [period_key(start + i) for i in range(n)]


def shift_months(d: _date, months: int) -> _date:
    """Move a date by whole months, clamping the day to the target month length."""
    ts = pd.Timestamp(d) + pd.DateOffset(months=months)
    return ts.date()


def days_in_month(key: str) -> int:
    return int(month_period(key).days_in_month)


def month_display(key: str) -> str:
    """'2024/03' -> 'Mar-24'; English abbreviations, locale independent."""
    p = month_period(key)
    return f"{canon.MONTH_ABBR[p.month - 1]}-{p.year % 100:02d}"
