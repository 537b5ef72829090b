from __future__ import annotations
from typing import TypedDict, Literal, List, Dict, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

PeriodCode = Literal["P1", "P2", "P3"]
Provenance = Literal["fresh", "stale"]


# Raw reading as delivered in the provider's timeCurve
class Reading(TypedDict, total=False):
    date: str  # "YYYY/MM/DD"
    time: str  # "HH:MM", may be "24:00"
    consumptionKWh: float
    surplusEnergyKWh: float
    period: PeriodCode


class PeriodTotals(TypedDict):
    P1: float
    P2: float
    P3: float


class Totals(TypedDict):
    total: float
    byPeriod: PeriodTotals


# Partial bucket as produced by build_monthly_summary
class MonthSummary(TypedDict):
    P1: float
    P2: float
    P3: float
    surplusEnergyKWh: float


MonthlySummary = Dict[str, MonthSummary]


@dataclass(frozen=True)
class MonthlyBucket:
    month_key: str  # "YYYY/MM"
    P1: float = 0.0
    P2: float = 0.0
    P3: float = 0.0
    surplus_kwh: float = 0.0
    days_in_month: int = 0
    display_label: str = ""

    @property
    def total(self) -> float:
        return self.P1 + self.P2 + self.P3

    def as_record(self) -> Dict[str, float | int | str]:
        return {
            "month": self.month_key,
            "label": self.display_label,
            "days": self.days_in_month,
            "P1": self.P1,
            "P2": self.P2,
            "P3": self.P3,
            "total": self.total,
            "surplus_kwh": self.surplus_kwh,
        }


RollingWindow = List[MonthlyBucket]


@dataclass
class ConsumptionReport:
    enriched: List[Reading]
    summary: MonthlySummary
    totals: Totals
    window: RollingWindow

    @property
    def months(self) -> List[str]:
        return [b.month_key for b in self.window]


## Supply / contract models
@dataclass(frozen=True)
class Supply:
    cups: str
    distributor_code: str
    point_type: Optional[int] = None
    address_info: Optional[str] = None


class ContractPower(BaseModel):
    """Contracted power for a supply, as returned by the contract endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    p1: Optional[float] = None  # kW
    p2: Optional[float] = None  # kW
    cups: Optional[str] = None
    address_info: Optional[str] = Field(default=None, alias="addressInfo")


## Cache
class CacheEntry(BaseModel):
    """Envelope persisted for every cached value; timestamps in epoch ms."""

    model_config = ConfigDict(populate_by_name=True)

    value: Any
    stored_at: float = Field(alias="storedAt")
    expires_at: float = Field(alias="expiresAt")

    def is_expired(self, now_ms: float) -> bool:
        return self.expires_at < now_ms

    @property
    def stored_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.stored_at / 1000.0, tz=timezone.utc)


## Retrieval
@dataclass
class Retrieved:
    value: Any
    provenance: Provenance
    key: str
    stored_at: Optional[datetime] = None  # original cache write, for stale results

    @property
    def is_stale(self) -> bool:
        return self.provenance == "stale"


@dataclass
class SupplyReport:
    supply: Supply
    contract: Retrieved
    consumption: Retrieved
    report: ConsumptionReport
    start_month: str = ""
    end_month: str = ""
    notes: List[str] = field(default_factory=list)

    @property
    def from_cache(self) -> bool:
        return self.contract.is_stale or self.consumption.is_stale
