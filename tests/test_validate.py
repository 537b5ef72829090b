"""Reading validity and rolling-window invariants."""

from dataclasses import replace

import pytest

from datadislogic import aggregate, exceptions, validate


def test_is_valid_reading():
    assert validate.is_valid_reading({"date": "2024/03/04", "time": "24:00"})
    assert not validate.is_valid_reading({"date": "2024/03/04"})
    assert not validate.is_valid_reading({"date": "", "time": "01:00"})
    assert not validate.is_valid_reading(["2024/03/04", "01:00"])


def test_assert_reading_raises_reading_error():
    with pytest.raises(exceptions.ReadingError):
        validate.assert_reading({"date": "2024/03/04", "time": "late"})
    with pytest.raises(exceptions.ReadingError):
        validate.assert_reading(None)
    validate.assert_reading({"date": "2024/03/04", "time": "01:00"})


def test_assert_window_rejects_short_window():
    window = aggregate.rolling_window({})
    with pytest.raises(exceptions.WindowError):
        validate.assert_window(window[:11])


def test_assert_window_rejects_gaps():
    window = aggregate.rolling_window({})
    window[5] = replace(window[5], month_key="1999/01")
    with pytest.raises(exceptions.WindowError):
        validate.assert_window(window)


def test_window_error_is_library_error():
    assert issubclass(exceptions.WindowError, exceptions.DDLError)
    assert issubclass(exceptions.RateLimitedError, exceptions.GatewayError)


def test_require_raises_requested_error():
    exceptions.require(True, "fine")
    with pytest.raises(exceptions.WindowError, match="bad window"):
        exceptions.require(False, "bad window", exceptions.WindowError)
    with pytest.raises(exceptions.DDLError):
        exceptions.require(False, "default type")
