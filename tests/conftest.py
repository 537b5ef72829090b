import pytest

from datadislogic import MemoryStore, TTLCache


def day_readings(date, kwh=0.5, surplus=0.0):
    """24 hourly readings for one day, times '01:00' .. '24:00' as delivered."""
    return [
        {
            "cups": "ES0031000000000001JN",
            "date": date,
            "time": f"{h:02d}:00",
            "consumptionKWh": kwh,
            "surplusEnergyKWh": surplus,
            "obtainMethod": "Real",
        }
        for h in range(1, 25)
    ]


class FakeClock:
    """Settable clock in epoch seconds."""

    def __init__(self, start=1_710_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ttl_cache(store, clock):
    return TTLCache(store, clock=clock)


@pytest.fixture
def weekday_readings():
    # Mon 2024/03/04 and Mon 2024/04/01, 0.5 kWh every hour
    return day_readings("2024/03/04") + day_readings("2024/04/01", surplus=0.25)


@pytest.fixture
def mixed_readings(weekday_readings):
    # Adds a Saturday (2024/03/09) and a holiday (2024/05/01)
    return (
        weekday_readings
        + day_readings("2024/03/09", kwh=1.0)
        + day_readings("2024/05/01", kwh=0.25)
    )


@pytest.fixture
def make_day():
    return day_readings
