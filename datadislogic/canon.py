from __future__ import annotations
from typing import Final, Dict, Tuple

# Wire field names as delivered by the provider's timeCurve
DATE: Final[str] = "date"
TIME: Final[str] = "time"
CONSUMPTION: Final[str] = "consumptionKWh"
SURPLUS: Final[str] = "surplusEnergyKWh"
PERIOD: Final[str] = "period"

DATE_FORMAT: Final[str] = "%Y/%m/%d"
WINDOW_MONTHS: Final[int] = 12

PERIODS: Final[Tuple[str, ...]] = ("P1", "P2", "P3")
FALLBACK_PERIOD: Final[str] = "P3"

# Fixed-date national holidays (month, day); movable feasts are not modelled
NATIONAL_HOLIDAYS: Final[frozenset[Tuple[int, int]]] = frozenset(
    {
        (1, 1),
        (1, 6),
        (3, 29),
        (5, 1),
        (8, 15),
        (10, 12),
        (11, 1),
        (12, 6),
        (12, 25),
    }
)

# Weekday hour -> period. 0 and 24 are distinct keys on purpose.
HOUR_TO_PERIOD: Final[Dict[int, str]] = {
    **{h: "P3" for h in range(0, 9)},
    9: "P2",
    10: "P2",
    **{h: "P1" for h in range(11, 15)},
    **{h: "P2" for h in range(15, 19)},
    **{h: "P1" for h in range(19, 23)},
    23: "P2",
    24: "P2",
}

MONTH_ABBR: Final[Tuple[str, ...]] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Cache key prefixes
CONSUMPTION_KEY_PREFIX: Final[str] = "consumption_data"
CONTRACT_KEY_PREFIX: Final[str] = "contract_detail"
