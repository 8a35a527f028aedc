from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest

from services.gemini import (
    CapabilityConfigurationError,
    GeminiInsightCapability,
    UpstreamResponseError,
)


class StubModels:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _capability(models: StubModels) -> GeminiInsightCapability:
    return GeminiInsightCapability(api_key=None, model="gemini-test", client=SimpleNamespace(models=models))


def test_missing_api_key_is_configuration_error() -> None:
    capability = GeminiInsightCapability(api_key=None)

    assert capability.configured is False
    with pytest.raises(CapabilityConfigurationError, match="GEMINI_API_KEY"):
        capability.generate("prompt")


def test_generate_returns_response_text() -> None:
    models = StubModels(response=SimpleNamespace(text="All good."))

    assert _capability(models).generate("prompt") == "All good."
    assert models.calls == [{"model": "gemini-test", "contents": "prompt"}]


@pytest.mark.parametrize("response", [None, SimpleNamespace(text=None), SimpleNamespace(text="  ")])
def test_unusable_response_is_upstream_error(response) -> None:
    with pytest.raises(UpstreamResponseError):
        _capability(StubModels(response=response)).generate("prompt")


def test_transport_failure_is_configuration_error() -> None:
    models = StubModels(error=httpx.ConnectError("connection refused"))

    with pytest.raises(CapabilityConfigurationError, match="unreachable"):
        _capability(models).generate("prompt")


def test_other_errors_propagate() -> None:
    models = StubModels(error=ValueError("bad request shape"))

    with pytest.raises(ValueError):
        _capability(models).generate("prompt")
