"""Google Gemini backed text generation for usage insights."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors

from settings import DEFAULT_GEMINI_MODEL

logger = logging.getLogger(__name__)


class CapabilityConfigurationError(RuntimeError):
    """The generation backend is unconfigured or cannot be reached."""


class UpstreamResponseError(RuntimeError):
    """The generation backend answered without usable text."""


class InsightCapability(Protocol):
    def generate(self, prompt: str) -> str: ...


class GeminiInsightCapability:
    """Thin wrapper around ``genai.Client`` exposing ``generate(prompt)``."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_GEMINI_MODEL,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = genai.Client(api_key=api_key)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def generate(self, prompt: str) -> str:
        if self._client is None:
            raise CapabilityConfigurationError(
                "GEMINI_API_KEY environment variable is not configured"
            )

        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except genai_errors.ClientError as exc:
            if exc.code in (401, 403):
                raise CapabilityConfigurationError(
                    "Gemini rejected the configured credentials"
                ) from exc
            raise
        except httpx.TransportError as exc:
            raise CapabilityConfigurationError("Gemini API is unreachable") from exc

        text = getattr(response, "text", None) if response is not None else None
        if not text or not text.strip():
            raise UpstreamResponseError("Invalid response from Gemini API")
        return text
