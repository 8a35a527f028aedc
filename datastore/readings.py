from __future__ import annotations
import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from logging_config import reading_context
from models.records import Reading
from settings import get_settings

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("date", "utility_type", "usage", "notes")
_READING_ADAPTER = TypeAdapter(Reading)


class ReadingStore:
    """Owner-scoped reading collection with optional JSON persistence."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._items: Dict[str, Reading] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def list(self, owner_id: str) -> list[Reading]:
        """Return copies of the owner's readings, newest date first."""

        with self._lock:
            owned = [replace(item) for item in self._items.values() if item.owner_id == owner_id]
        return sorted(owned, key=lambda item: item.date, reverse=True)

    def get(self, reading_id: str, owner_id: str) -> Optional[Reading]:
        with self._lock:
            item = self._items.get(reading_id)
            if item is None or item.owner_id != owner_id:
                return None
            return replace(item)

    def insert(self, owner_id: str, fields: Mapping[str, Any]) -> Reading:
        now = datetime.now(timezone.utc)
        reading = Reading(
            id=str(uuid4()),
            owner_id=owner_id,
            date=str(fields["date"]),
            utility_type=_as_type_string(fields["utility_type"]),
            usage=float(fields["usage"]),
            notes=fields.get("notes") or None,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._items[reading.id] = reading
            self._persist()
        logger.info(
            "Inserted reading",
            extra=reading_context(reading),
        )
        return replace(reading)

    def update(self, reading_id: str, owner_id: str, fields: Mapping[str, Any]) -> Reading:
        changes: Dict[str, Any] = {}
        for name in _MUTABLE_FIELDS:
            if name not in fields:
                continue
            value = fields[name]
            if name == "utility_type":
                value = _as_type_string(value)
            elif name == "usage":
                value = float(value)
            elif name == "date":
                value = str(value)
            changes[name] = value

        with self._lock:
            current = self._items.get(reading_id)
            if current is None or current.owner_id != owner_id:
                raise KeyError(f"Reading {reading_id!r} not found.")
            updated = replace(current, **changes, updated_at=datetime.now(timezone.utc))
            self._items[reading_id] = updated
            self._persist()
        logger.info(
            "Updated reading",
            extra=reading_context(updated),
        )
        return replace(updated)

    def delete(self, reading_id: str, owner_id: str) -> None:
        with self._lock:
            current = self._items.get(reading_id)
            if current is None or current.owner_id != owner_id:
                raise KeyError(f"Reading {reading_id!r} not found.")
            del self._items[reading_id]
            self._persist()
        logger.info(
            "Deleted reading",
            extra=reading_context(current),
        )

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            reading_id: _READING_ADAPTER.dump_python(item, mode="json")
            for reading_id, item in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable readings file %s", self.persistence_path)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring readings file %s without an id mapping", self.persistence_path)
            return

        for reading_id, payload in data.items():
            try:
                self._items[reading_id] = _READING_ADAPTER.validate_python(payload)
            except ValidationError as exc:
                logger.warning(
                    "Skipping stored reading with %d invalid field(s)",
                    exc.error_count(),
                    extra={"reading_id": reading_id},
                )


def _as_type_string(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.readings_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
