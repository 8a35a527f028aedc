from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import TYPE_CHECKING, Any, Dict, Iterable, Sequence

from settings import get_settings

if TYPE_CHECKING:
    from models.records import Reading

_DEFAULT_EXTRA_KEYS = (
    "owner_id",
    "reading_id",
    "utility_type",
    "reading_count",
    "outcome",
    "elapsed_ms",
    "error_count",
    "timeout_seconds",
)

# Client libraries used for insight calls log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "google_genai")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Append known context attributes as ``key=value`` after the message."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def reading_context(reading: "Reading") -> Dict[str, Any]:
    """``extra`` mapping identifying one stored reading."""
    return {
        "owner_id": reading.owner_id,
        "reading_id": reading.id,
        "utility_type": reading.utility_type,
    }


def configure_logging(level: str | int | None = None) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {name: {"level": "WARNING"} for name in _CHATTY_LOGGERS},
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
