from __future__ import annotations
from datetime import date as _date
from typing import Any, Iterable, Mapping, Optional, cast

import pandas as pd
from loguru import logger

from . import canon, periods, utils, validate
from .types import (
    ConsumptionReport,
    MonthlyBucket,
    MonthlySummary,
    MonthSummary,
    Reading,
    RollingWindow,
    Totals,
)

FRAME_COLUMNS = [
    "date",
    "time",
    "month",
    "period",
    "classified",
    "consumption_kwh",
    "surplus_kwh",
    "valid",
]


def _kwh(value: Any) -> float:
    return float(value) if utils.is_number(value) else 0.0


def _period_of(entry: Mapping[str, Any]) -> str:
    period = entry.get(canon.PERIOD)
    if period in canon.PERIODS:
        return period
    return periods.classify(entry[canon.DATE], entry[canon.TIME])


def enrich(readings: Iterable[Any]) -> list[Reading]:
    """
    Attach a tariff period to every reading and normalise the energy fields.

    - a period already present is kept; otherwise it is classified
    - non-numeric or missing kWh fields become 0
    - entries without a parseable date/time are passed through unchanged
      (see validate.is_valid_reading) and never abort the batch
    """
    if readings is None or isinstance(readings, (str, bytes, Mapping)):
        logger.warning("enrich received invalid data: {!r}", readings)
        return []
    data = list(readings)
    if not data:
        logger.warning("enrich received no readings")
        return []

    out: list[Reading] = []
    invalid = 0
    for entry in data:
        if not validate.is_valid_reading(entry):
            invalid += 1
            logger.warning("Invalid entry in consumption data: {!r}", entry)
            out.append(entry)
            continue
        enriched = dict(entry)
        enriched[canon.PERIOD] = _period_of(entry)
        enriched[canon.CONSUMPTION] = _kwh(entry.get(canon.CONSUMPTION))
        enriched[canon.SURPLUS] = _kwh(entry.get(canon.SURPLUS))
        out.append(cast(Reading, enriched))

    logger.debug("Enriched {} readings ({} invalid)", len(out), invalid)
    return out


def to_frame(readings: Iterable[Any]) -> pd.DataFrame:
    """
    Tabular view of a reading stream.

    One row per input entry; invalid entries are kept with valid=False,
    no month/period and zero energy so they drop out of every sum.
    'period' is the assigned period, 'classified' the calendar classification.
    """
    rows = []
    for entry in readings or []:
        if not validate.is_valid_reading(entry):
            raw = entry if isinstance(entry, Mapping) else {}
            rows.append(
                {
                    "date": raw.get(canon.DATE),
                    "time": raw.get(canon.TIME),
                    "month": None,
                    "period": None,
                    "classified": None,
                    "consumption_kwh": 0.0,
                    "surplus_kwh": 0.0,
                    "valid": False,
                }
            )
            continue
        d = utils.parse_date(entry[canon.DATE])
        rows.append(
            {
                "date": entry[canon.DATE],
                "time": entry[canon.TIME],
                "month": utils.month_key(d),
                "period": _period_of(entry),
                "classified": periods.classify(entry[canon.DATE], entry[canon.TIME]),
                "consumption_kwh": _kwh(entry.get(canon.CONSUMPTION)),
                "surplus_kwh": _kwh(entry.get(canon.SURPLUS)),
                "valid": True,
            }
        )
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def _valid_rows(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[df["valid"].astype(bool)]


def build_monthly_summary(readings: Iterable[Any]) -> MonthlySummary:
    """
    Per-month period totals keyed by 'YYYY/MM'.

    Values: {'P1', 'P2', 'P3', 'surplusEnergyKWh'}; months appear only when
    at least one valid reading falls in them.
    """
    df = _valid_rows(to_frame(readings))
    if df.empty:
        logger.warning("build_monthly_summary received no valid readings")
        return {}

    by_period = (
        df.groupby(["month", "period"])["consumption_kwh"]
        .sum()
        .unstack("period")
        .reindex(columns=list(canon.PERIODS))
        .fillna(0.0)
    )
    surplus = df.groupby("month")["surplus_kwh"].sum()

    summary: MonthlySummary = {}
    for month in sorted(by_period.index):
        row = by_period.loc[month]
        summary[month] = MonthSummary(
            P1=float(row["P1"]),
            P2=float(row["P2"]),
            P3=float(row["P3"]),
            surplusEnergyKWh=float(surplus.loc[month]),
        )

    first = next(iter(summary))
    logger.debug("Monthly summary for {}: {}", first, summary[first])
    return summary


def totals(readings: Iterable[Any]) -> Totals:
    """
    Independent cross-check of the monthly summary.

    'total' sums every valid reading; 'byPeriod' re-classifies each reading
    from its date and time rather than trusting a stored period.
    """
    df = _valid_rows(to_frame(readings))
    by_period = df.groupby("classified")["consumption_kwh"].sum()
    return {
        "total": float(df["consumption_kwh"].sum()),
        "byPeriod": {
            "P1": float(by_period.get("P1", 0.0)),
            "P2": float(by_period.get("P2", 0.0)),
            "P3": float(by_period.get("P3", 0.0)),
        },
    }


def rolling_window(
    summary: Mapping[str, Mapping[str, float]],
    today: Optional[_date] = None,
) -> RollingWindow:
    """
    Exactly 12 consecutive monthly buckets.

    Anchored at the earliest month in the summary ('YYYY/MM' sorts
    chronologically), or the current month when the summary is empty.
    Months without data are explicit zero buckets.
    """
    keys = sorted(summary)
    if keys:
        anchor = keys[0]
    else:
        anchor = utils.month_key(today or _date.today())

    months = utils.consecutive_months(anchor, canon.WINDOW_MONTHS)
    dropped = [k for k in keys if k not in months]
    if dropped:
        logger.debug("Months outside the rolling window: {}", ", ".join(dropped))

    window: RollingWindow = []
    for key in months:
        src = summary.get(key) or {}
        window.append(
            MonthlyBucket(
                month_key=key,
                P1=float(src.get("P1", 0.0)),
                P2=float(src.get("P2", 0.0)),
                P3=float(src.get("P3", 0.0)),
                surplus_kwh=float(src.get(canon.SURPLUS, 0.0)),
                days_in_month=utils.days_in_month(key),
                display_label=utils.month_display(key),
            )
        )
    return window


def process(readings: Any, today: Optional[_date] = None) -> ConsumptionReport:
    """Enrich, summarise, total and window a reading stream in one pass."""
    if not isinstance(readings, (list, tuple)) or len(readings) == 0:
        logger.warning("process received invalid data: {!r}", type(readings).__name__)
        return ConsumptionReport(
            enriched=[],
            summary={},
            totals={"total": 0.0, "byPeriod": {"P1": 0.0, "P2": 0.0, "P3": 0.0}},
            window=rolling_window({}, today=today),
        )

    enriched = enrich(readings)
    summary = build_monthly_summary(enriched)
    tot = totals(enriched)
    window = rolling_window(summary, today=today)
    validate.assert_window(window)

    logger.info(
        "Processed {} readings: total {:.2f} kWh (P1 {:.2f}, P2 {:.2f}, P3 {:.2f})",
        len(enriched),
        tot["total"],
        tot["byPeriod"]["P1"],
        tot["byPeriod"]["P2"],
        tot["byPeriod"]["P3"],
    )
    return ConsumptionReport(enriched=enriched, summary=summary, totals=tot, window=window)


def window_frame(window: RollingWindow) -> pd.DataFrame:
    """One row per month, in window order, for tables and exports."""
    return pd.DataFrame.from_records([b.as_record() for b in window])
