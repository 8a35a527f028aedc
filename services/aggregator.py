"""Aggregation logic for utility readings.

Every helper here is pure: it only reads its arguments and returns fresh
values, so callers can recompute views on each filter change without caching.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

from models.records import (
    ALL_UTILITIES,
    UTILITY_TYPE_VALUES,
    ChartDataPoint,
    DateRange,
    Reading,
    Statistics,
    UtilityType,
)

_SECONDS_PER_DAY = 24 * 60 * 60


def _type_value(utility_type: UtilityType | str) -> str:
    if isinstance(utility_type, UtilityType):
        return utility_type.value
    return utility_type


def calculate_period_days(date_range: DateRange) -> int:
    """Number of calendar days covered by the range, both endpoints included.

    The absolute difference is used, so a reversed range still yields a
    positive count.
    """
    start = datetime.fromisoformat(date_range.start)
    end = datetime.fromisoformat(date_range.end)
    diff_seconds = abs((end - start).total_seconds())
    return math.ceil(diff_seconds / _SECONDS_PER_DAY) + 1


def calculate_total_usage(
    readings: Iterable[Reading], utility_type: UtilityType | str
) -> float:
    wanted = _type_value(utility_type)
    return sum(
        (reading.usage for reading in readings if reading.utility_type == wanted),
        0.0,
    )


def calculate_average_usage(
    readings: Iterable[Reading],
    utility_type: UtilityType | str,
    period_days: int,
) -> float:
    if period_days == 0:
        return 0.0
    return calculate_total_usage(readings, utility_type) / period_days


def calculate_statistics(
    readings: Sequence[Reading], date_range: DateRange
) -> Statistics:
    period_days = calculate_period_days(date_range)
    return Statistics(
        total_electricity=calculate_total_usage(readings, UtilityType.electricity),
        total_gas=calculate_total_usage(readings, UtilityType.gas),
        total_water=calculate_total_usage(readings, UtilityType.water),
        avg_electricity=calculate_average_usage(
            readings, UtilityType.electricity, period_days
        ),
        avg_gas=calculate_average_usage(readings, UtilityType.gas, period_days),
        avg_water=calculate_average_usage(readings, UtilityType.water, period_days),
        period_days=period_days,
    )


def filter_by_date_range(
    readings: Iterable[Reading], date_range: DateRange
) -> List[Reading]:
    # ISO calendar strings sort in date order, so plain string comparison works.
    return [
        reading
        for reading in readings
        if date_range.start <= reading.date <= date_range.end
    ]


def filter_by_utility_type(
    readings: Iterable[Reading], utility_type: UtilityType | str
) -> List[Reading]:
    wanted = _type_value(utility_type)
    if wanted == ALL_UTILITIES:
        return list(readings)
    return [reading for reading in readings if reading.utility_type == wanted]


def transform_to_chart_data(readings: Iterable[Reading]) -> List[ChartDataPoint]:
    """Group readings into one chart point per distinct date string.

    A later reading for the same date and utility replaces the earlier value
    rather than adding to it, so the chart can disagree with the summed
    statistics when duplicates exist.
    """
    grouped: Dict[str, ChartDataPoint] = {}
    for reading in readings:
        point = grouped.get(reading.date)
        if point is None:
            point = ChartDataPoint(date=reading.date)
            grouped[reading.date] = point
        if reading.utility_type in UTILITY_TYPE_VALUES:
            setattr(point, reading.utility_type, reading.usage)
    return sorted(grouped.values(), key=lambda point: point.date)
