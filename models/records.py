"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class UtilityType(str, Enum):
    """The closed set of utilities a reading can describe."""

    electricity = "electricity"
    gas = "gas"
    water = "water"

    @property
    def unit(self) -> str:
        return UNIT_LABELS[self]


UNIT_LABELS: Dict[UtilityType, str] = {
    UtilityType.electricity: "kWh",
    UtilityType.gas: "m³",
    UtilityType.water: "L",
}

UTILITY_TYPE_VALUES = tuple(member.value for member in UtilityType)

ALL_UTILITIES = "all"


@dataclass(slots=True)
class Reading:
    """A single utility usage observation for one day.

    ``utility_type`` is kept as a plain string so rows written before the
    enumeration was enforced still load; the aggregation helpers skip values
    they do not recognise.
    """

    id: str
    owner_id: str
    date: str
    utility_type: str
    usage: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive span of ISO calendar dates (``YYYY-MM-DD``)."""

    start: str
    end: str

    @property
    def is_reversed(self) -> bool:
        return self.start > self.end


@dataclass(slots=True)
class ChartDataPoint:
    """Usage per utility for a single date; unset utilities stay ``None``."""

    date: str
    electricity: Optional[float] = None
    gas: Optional[float] = None
    water: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"date": self.date}
        for utility in UTILITY_TYPE_VALUES:
            value = getattr(self, utility)
            if value is not None:
                payload[utility] = value
        return payload


@dataclass(slots=True)
class Statistics:
    """Totals and per-day averages over a date range."""

    total_electricity: float = 0.0
    total_gas: float = 0.0
    total_water: float = 0.0
    avg_electricity: float = 0.0
    avg_gas: float = 0.0
    avg_water: float = 0.0
    period_days: int = 1
