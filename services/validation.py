"""Field validation for readings before they reach the store."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, time
from numbers import Real
from typing import Any, List, Mapping, Optional

from models.records import UTILITY_TYPE_VALUES

DATE_REQUIRED = "Date is required"
DATE_MALFORMED = "Date must use the YYYY-MM-DD format"
DATE_IN_FUTURE = "Date cannot be in the future"
TYPE_REQUIRED = "Valid utility type is required (electricity, gas, or water)"
USAGE_REQUIRED = "Usage value is required"
USAGE_NOT_POSITIVE = "Usage must be a positive number"


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def _parse_date(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def is_valid_date(value: str, now: Optional[datetime] = None) -> bool:
    """True when ``value`` falls on or before the end of today (local clock)."""
    parsed = _parse_date(value)
    if parsed is None:
        return False
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    current = now or datetime.now()
    end_of_today = datetime.combine(current.date(), time.max)
    return parsed <= end_of_today


def is_valid_usage(usage: Any) -> bool:
    if isinstance(usage, bool) or not isinstance(usage, Real):
        return False
    return usage > 0 and math.isfinite(usage)


def _check_date(value: Any, errors: List[str], now: Optional[datetime]) -> None:
    if not value:
        errors.append(DATE_REQUIRED)
    elif _parse_date(value) is None:
        errors.append(DATE_MALFORMED)
    elif not is_valid_date(value, now=now):
        errors.append(DATE_IN_FUTURE)


def _check_type(value: Any, errors: List[str]) -> None:
    if hasattr(value, "value"):
        value = value.value
    if not value or value not in UTILITY_TYPE_VALUES:
        errors.append(TYPE_REQUIRED)


def _check_usage(value: Any, errors: List[str]) -> None:
    if value is None:
        errors.append(USAGE_REQUIRED)
    elif not is_valid_usage(value):
        errors.append(USAGE_NOT_POSITIVE)


def validate_energy_reading(
    candidate: Mapping[str, Any], now: Optional[datetime] = None
) -> ValidationResult:
    """Collect every problem with a new reading rather than stopping at the first."""
    errors: List[str] = []
    _check_date(candidate.get("date"), errors, now)
    _check_type(candidate.get("utility_type"), errors)
    _check_usage(candidate.get("usage"), errors)
    return ValidationResult(valid=not errors, errors=errors)


def validate_reading_update(
    fields: Mapping[str, Any], now: Optional[datetime] = None
) -> ValidationResult:
    """Validate only the fields present in a partial update."""
    errors: List[str] = []
    if "date" in fields:
        _check_date(fields["date"], errors, now)
    if "utility_type" in fields:
        _check_type(fields["utility_type"], errors)
    if "usage" in fields:
        _check_usage(fields["usage"], errors)
    return ValidationResult(valid=not errors, errors=errors)
