from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional


_READINGS_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_GEMINI_API_KEY_ENV = "GEMINI_API_KEY"
_GEMINI_MODEL_ENV = "GEMINI_MODEL"
_INSIGHT_TIMEOUT_ENV = "INSIGHT_TIMEOUT_SECONDS"
_API_TOKENS_ENV = "API_TOKENS"
_DEFAULT_RANGE_DAYS_ENV = "DEFAULT_RANGE_DAYS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_INSIGHT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    readings_persistence_path: Optional[str]
    gemini_api_key: Optional[str]
    gemini_model: str
    insight_timeout_seconds: float
    default_range_days: int
    log_level: str
    api_tokens: Dict[str, str] = field(default_factory=dict)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_api_tokens() -> Dict[str, str]:
    """Parse ``token:owner`` pairs separated by commas."""
    raw = os.getenv(_API_TOKENS_ENV, "").strip()
    tokens: Dict[str, str] = {}
    for chunk in raw.split(","):
        token, sep, owner = chunk.partition(":")
        token = token.strip()
        owner = owner.strip()
        if not sep or not token or not owner:
            continue
        tokens[token] = owner
    return tokens


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_persistence_path=_read_optional_env(
            _READINGS_PATH_ENV, "./tmp/readings.json"
        ),
        gemini_api_key=_read_optional_env(_GEMINI_API_KEY_ENV, None),
        gemini_model=_read_str_env(_GEMINI_MODEL_ENV, DEFAULT_GEMINI_MODEL),
        insight_timeout_seconds=_read_positive_float(
            _INSIGHT_TIMEOUT_ENV, DEFAULT_INSIGHT_TIMEOUT
        ),
        default_range_days=_read_positive_int(_DEFAULT_RANGE_DAYS_ENV, 30),
        log_level=_read_log_level("INFO"),
        api_tokens=_read_api_tokens(),
    )
