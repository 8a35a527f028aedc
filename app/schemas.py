"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.records import ChartDataPoint, Reading, Statistics


class ReadingCreate(BaseModel):
    """Payload for logging a new reading.

    Date, type and usage are accepted as sent so that every missing or
    invalid value is reported together by the validation step instead of
    one at a time.
    """

    model_config = ConfigDict(populate_by_name=True)

    date: Any = None
    utility_type: Any = Field(default=None, alias="type")
    usage: Any = None
    notes: Optional[str] = None


class ReadingUpdate(BaseModel):
    """Partial update; only fields that are sent are changed."""

    model_config = ConfigDict(populate_by_name=True)

    date: Any = None
    utility_type: Any = Field(default=None, alias="type")
    usage: Any = None
    notes: Optional[str] = None


class ReadingOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str
    date: str
    utility_type: str = Field(..., alias="type")
    usage: float
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_record(cls, reading: Reading) -> "ReadingOut":
        return cls.model_validate(reading.to_dict())


class StatisticsOut(BaseModel):
    """Totals and daily averages, serialized in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_electricity: float
    total_gas: float
    total_water: float
    avg_electricity: float
    avg_gas: float
    avg_water: float
    period_days: int = Field(..., ge=1)

    @classmethod
    def from_record(cls, statistics: Statistics) -> "StatisticsOut":
        return cls(
            total_electricity=statistics.total_electricity,
            total_gas=statistics.total_gas,
            total_water=statistics.total_water,
            avg_electricity=statistics.avg_electricity,
            avg_gas=statistics.avg_gas,
            avg_water=statistics.avg_water,
            period_days=statistics.period_days,
        )


class ChartPointOut(BaseModel):
    date: str
    electricity: Optional[float] = None
    gas: Optional[float] = None
    water: Optional[float] = None

    @classmethod
    def from_record(cls, point: ChartDataPoint) -> "ChartPointOut":
        return cls(**point.to_dict())


class EnergyDataItem(BaseModel):
    """One reading as sent by the dashboard when requesting insights."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    date: str
    utility_type: str = Field(..., alias="type")
    usage: float
    notes: Optional[str] = None

    def to_record(self, owner_id: str) -> Reading:
        return Reading(
            id=self.id or "",
            owner_id=owner_id,
            date=self.date,
            utility_type=self.utility_type,
            usage=self.usage,
            notes=self.notes,
        )


class InsightRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    energy_data: List[EnergyDataItem] = Field(..., alias="energyData")


class InsightResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    recommendations: List[str] = Field(default_factory=list)
    generated_at: dt.datetime = Field(..., alias="generatedAt")
