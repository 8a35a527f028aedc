from __future__ import annotations

from typing import Iterable

from datastore.readings import build_default_store
from services.insights import build_orchestrator
from settings import DEFAULT_GEMINI_MODEL, get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "readings.json"

    monkeypatch.setenv("READINGS_PERSISTENCE_PATH", str(store_path))
    monkeypatch.setenv("GEMINI_API_KEY", "  ")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-custom")
    monkeypatch.setenv("INSIGHT_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("API_TOKENS", "abc:owner-1, def:owner-2,broken,:nobody")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_store)
    _clear_caches(caches)

    settings = get_settings()
    store = build_default_store()
    orchestrator = build_orchestrator(settings)

    try:
        assert store.persistence_path == store_path
        assert settings.gemini_api_key is None
        assert orchestrator.capability.model == "gemini-custom"
        assert orchestrator.timeout_seconds == 2.5
        assert settings.api_tokens == {"abc": "owner-1", "def": "owner-2"}
        assert settings.log_level == "DEBUG"
    finally:
        orchestrator.shutdown()
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("INSIGHT_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("DEFAULT_RANGE_DAYS", "0")
    monkeypatch.setenv("GEMINI_MODEL", "")
    monkeypatch.delenv("API_TOKENS", raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.insight_timeout_seconds == 10.0
        assert settings.default_range_days == 30
        assert settings.gemini_model == DEFAULT_GEMINI_MODEL
        assert settings.api_tokens == {}
    finally:
        get_settings.cache_clear()
