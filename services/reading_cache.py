"""Local reading snapshot with two-phase updates.

An update is first applied to the local snapshot as a tentative change, then
written to the authoritative source. A successful write commits; any failure
discards the tentative change and resynchronizes from the source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol

from models.records import Reading

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("date", "utility_type", "usage", "notes")


class ReadingSource(Protocol):
    def fetch_readings(self) -> List[Reading]: ...

    def write_update(self, reading_id: str, fields: Mapping[str, Any]) -> None: ...


class UpdateState(str, Enum):
    tentative = "tentative"
    committed = "committed"
    rolled_back = "rolled_back"


@dataclass
class UpdateResult:
    reading_id: str
    state: UpdateState
    error: Optional[BaseException] = None


class ReadingCache:
    def __init__(self, source: ReadingSource) -> None:
        self._source = source
        self._readings: List[Reading] = []
        self._states: Dict[str, UpdateState] = {}

    @property
    def readings(self) -> List[Reading]:
        return [replace(reading) for reading in self._readings]

    def state_of(self, reading_id: str) -> Optional[UpdateState]:
        return self._states.get(reading_id)

    def refresh(self) -> List[Reading]:
        self._readings = list(self._source.fetch_readings())
        return self.readings

    def update(self, reading_id: str, fields: Mapping[str, Any]) -> UpdateResult:
        index = self._index_of(reading_id)
        if index is None:
            raise KeyError(f"Reading {reading_id!r} is not in the local snapshot.")

        original = self._readings[index]
        changes = {name: fields[name] for name in _MUTABLE_FIELDS if name in fields}
        self._readings[index] = replace(
            original, **changes, updated_at=datetime.now(timezone.utc)
        )
        self._states[reading_id] = UpdateState.tentative

        try:
            self._source.write_update(reading_id, fields)
        except Exception as exc:
            logger.warning(
                "Rolling back tentative update: %s",
                exc,
                extra={"reading_id": reading_id, "outcome": UpdateState.rolled_back.value},
            )
            self._readings[index] = original
            self._states[reading_id] = UpdateState.rolled_back
            self.refresh()
            return UpdateResult(reading_id=reading_id, state=UpdateState.rolled_back, error=exc)

        self._states[reading_id] = UpdateState.committed
        self.refresh()
        return UpdateResult(reading_id=reading_id, state=UpdateState.committed)

    def _index_of(self, reading_id: str) -> Optional[int]:
        for index, reading in enumerate(self._readings):
            if reading.id == reading_id:
                return index
        return None
