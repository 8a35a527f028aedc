"""Reading CRUD with validation on write and derived read-side views."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from datastore.readings import ReadingStore
from models.records import (
    ALL_UTILITIES,
    ChartDataPoint,
    DateRange,
    Reading,
    Statistics,
    UtilityType,
)
from services.aggregator import (
    calculate_statistics,
    filter_by_date_range,
    filter_by_utility_type,
    transform_to_chart_data,
)
from services.validation import validate_energy_reading, validate_reading_update

logger = logging.getLogger(__name__)


class ReadingValidationError(ValueError):
    """Raised when a write is rejected; carries every field error found."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class ReadingService:
    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def list_readings(
        self,
        owner_id: str,
        date_range: Optional[DateRange] = None,
        utility_type: UtilityType | str = ALL_UTILITIES,
    ) -> List[Reading]:
        readings = self.store.list(owner_id)
        if date_range is not None:
            readings = filter_by_date_range(readings, date_range)
        return filter_by_utility_type(readings, utility_type)

    def add_reading(self, owner_id: str, fields: Mapping[str, Any]) -> Reading:
        result = validate_energy_reading(fields)
        if not result.valid:
            logger.warning(
                "Rejected new reading",
                extra={"owner_id": owner_id, "error_count": len(result.errors)},
            )
            raise ReadingValidationError(result.errors)
        return self.store.insert(owner_id, fields)

    def update_reading(
        self, owner_id: str, reading_id: str, fields: Mapping[str, Any]
    ) -> Reading:
        result = validate_reading_update(fields)
        if not result.valid:
            logger.warning(
                "Rejected reading update",
                extra={
                    "owner_id": owner_id,
                    "reading_id": reading_id,
                    "error_count": len(result.errors),
                },
            )
            raise ReadingValidationError(result.errors)
        return self.store.update(reading_id, owner_id, fields)

    def delete_reading(self, owner_id: str, reading_id: str) -> None:
        self.store.delete(reading_id, owner_id)

    def statistics(self, owner_id: str, date_range: DateRange) -> Statistics:
        readings = self.list_readings(owner_id, date_range)
        return calculate_statistics(readings, date_range)

    def chart(
        self,
        owner_id: str,
        date_range: DateRange,
        utility_type: UtilityType | str = ALL_UTILITIES,
    ) -> List[ChartDataPoint]:
        return transform_to_chart_data(
            self.list_readings(owner_id, date_range, utility_type)
        )
