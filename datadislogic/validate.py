from __future__ import annotations
from typing import Any, Mapping

from . import canon, exceptions, utils
from .types import RollingWindow


def is_valid_reading(entry: Any) -> bool:
    """A reading is usable for totals when it has a parseable date and time."""
    if not isinstance(entry, Mapping):
        return False
    return (
        utils.parse_date(entry.get(canon.DATE)) is not None
        and utils.parse_hour(entry.get(canon.TIME)) is not None
    )


def assert_reading(entry: Any) -> None:
    if not isinstance(entry, Mapping):
        raise exceptions.ReadingError(f"Reading must be a mapping, got {type(entry).__name__}.")
    if utils.parse_date(entry.get(canon.DATE)) is None:
        raise exceptions.ReadingError(f"Unparseable date {entry.get(canon.DATE)!r}.")
    if utils.parse_hour(entry.get(canon.TIME)) is None:
        raise exceptions.ReadingError(f"Unparseable time {entry.get(canon.TIME)!r}.")


def assert_window(window: RollingWindow) -> None:
    """Rolling windows hold exactly 12 buckets with strictly consecutive months."""
    exceptions.require(
        len(window) == canon.WINDOW_MONTHS,
        f"Window must have {canon.WINDOW_MONTHS} months, got {len(window)}.",
        exceptions.WindowError,
    )
    keys = [b.month_key for b in window]
    exceptions.require(
        keys == utils.consecutive_months(keys[0], canon.WINDOW_MONTHS),
        f"Window months are not consecutive: {', '.join(keys)}",
        exceptions.WindowError,
    )
