"""Bounded-time insight generation over a set of readings."""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

from models.records import Reading
from services.gemini import (
    CapabilityConfigurationError,
    GeminiInsightCapability,
    InsightCapability,
    UpstreamResponseError,
)
from settings import DEFAULT_INSIGHT_TIMEOUT, Settings

logger = logging.getLogger(__name__)

PROMPT_INSTRUCTIONS = """Provide:
1. A 2-3 sentence summary of recent trends (increases, decreases, patterns)
2. Three specific, actionable recommendations for reducing energy consumption

Format the response as natural, friendly language suitable for homeowners."""

_LIST_ITEM = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s+(?P<body>.+?)\s*$")


class NoDataError(ValueError):
    """Raised before any external call when there is nothing to analyse."""


class InsightOutcomeKind(str, Enum):
    succeeded = "succeeded"
    timeout = "timeout"
    configuration_error = "configuration_error"
    upstream_error = "upstream_error"
    unknown = "unknown"


OUTCOME_MESSAGES = {
    InsightOutcomeKind.succeeded: "Insights generated.",
    InsightOutcomeKind.timeout: "Request timeout: AI insights generation took too long",
    InsightOutcomeKind.configuration_error: "Server configuration error",
    InsightOutcomeKind.upstream_error: "The AI service returned an unusable response. Please try again later.",
    InsightOutcomeKind.unknown: "Failed to generate insights. Please try again later.",
}


@dataclass
class InsightOutcome:
    kind: InsightOutcomeKind
    message: str
    text: Optional[str] = None
    summary: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    generated_at: Optional[datetime] = None
    elapsed_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.kind is InsightOutcomeKind.succeeded


def build_prompt(readings: Sequence[Reading]) -> str:
    formatted = [
        {
            "date": reading.date,
            "type": reading.utility_type,
            "usage": reading.usage,
            "notes": reading.notes or "",
        }
        for reading in readings
    ]
    return (
        "Analyze the following household energy usage data:\n\n"
        f"{json.dumps(formatted, indent=2, ensure_ascii=False)}\n\n"
        f"{PROMPT_INSTRUCTIONS}"
    )


def split_insight_text(text: str) -> tuple[str, List[str]]:
    """Separate list items (recommendations) from the surrounding prose."""
    summary_lines: List[str] = []
    recommendations: List[str] = []
    for line in text.splitlines():
        match = _LIST_ITEM.match(line)
        if match:
            recommendations.append(match.group("body"))
        else:
            summary_lines.append(line)
    if not recommendations:
        return text.strip(), []
    summary = "\n".join(summary_lines).strip()
    return summary, recommendations


class InsightOrchestrator:
    """Runs one generation call per request and races it against a timeout.

    The first of {response, timeout} decides the outcome. Every call starts on
    its own daemon thread straight away, so a call that hangs never delays
    another request. A call that loses the race keeps running; whatever it
    eventually produces is dropped.
    """

    def __init__(
        self,
        capability: InsightCapability,
        timeout_seconds: float = DEFAULT_INSIGHT_TIMEOUT,
    ) -> None:
        self.capability = capability
        self.timeout_seconds = timeout_seconds
        self._lock = threading.Lock()
        self._calls: set[threading.Thread] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)

    def request_insights(self, readings: Sequence[Reading]) -> InsightOutcome:
        if not readings:
            raise NoDataError("Add some energy readings first to get insights")
        if self._closed:
            raise RuntimeError("Insight orchestrator has been shut down.")

        prompt = build_prompt(readings)
        start_time = time.perf_counter()
        future = self._start_call(prompt)

        try:
            text = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            future.add_done_callback(self._discard_late_result)
            outcome = self._failure(InsightOutcomeKind.timeout, start_time)
        except CapabilityConfigurationError as exc:
            outcome = self._failure(InsightOutcomeKind.configuration_error, start_time, exc)
        except UpstreamResponseError as exc:
            outcome = self._failure(InsightOutcomeKind.upstream_error, start_time, exc)
        except Exception as exc:
            outcome = self._failure(InsightOutcomeKind.unknown, start_time, exc)
        else:
            if not isinstance(text, str) or not text.strip():
                outcome = self._failure(InsightOutcomeKind.upstream_error, start_time)
            else:
                summary, recommendations = split_insight_text(text)
                outcome = InsightOutcome(
                    kind=InsightOutcomeKind.succeeded,
                    message=OUTCOME_MESSAGES[InsightOutcomeKind.succeeded],
                    text=text,
                    summary=summary,
                    recommendations=recommendations,
                    generated_at=datetime.now(timezone.utc),
                    elapsed_ms=_elapsed_ms(start_time),
                )

        logger.info(
            "Insight request finished",
            extra={
                "outcome": outcome.kind.value,
                "elapsed_ms": outcome.elapsed_ms,
                "reading_count": len(readings),
                "timeout_seconds": self.timeout_seconds,
            },
        )
        return outcome

    def shutdown(self, wait: bool = False) -> None:
        """Refuse new requests; optionally join calls that are still running."""
        with self._lock:
            self._closed = True
            calls = list(self._calls)
        if wait:
            for thread in calls:
                thread.join()

    def _start_call(self, prompt: str) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()

        def run() -> None:
            try:
                result = self.capability.generate(prompt)
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)
            finally:
                with self._lock:
                    self._calls.discard(threading.current_thread())

        thread = threading.Thread(target=run, name="insights-call", daemon=True)
        with self._lock:
            self._calls.add(thread)
        thread.start()
        return future

    def _failure(
        self,
        kind: InsightOutcomeKind,
        start_time: float,
        exc: Optional[BaseException] = None,
    ) -> InsightOutcome:
        if exc is not None:
            log = logger.error if kind is InsightOutcomeKind.unknown else logger.warning
            log("Insight generation failed: %s", exc, exc_info=kind is InsightOutcomeKind.unknown)
        return InsightOutcome(
            kind=kind,
            message=OUTCOME_MESSAGES[kind],
            elapsed_ms=_elapsed_ms(start_time),
        )

    @staticmethod
    def _discard_late_result(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("Discarding late insight failure: %s", exc)
        else:
            logger.debug("Discarding late insight response")


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


def build_orchestrator(settings: Settings) -> InsightOrchestrator:
    """Wire an orchestrator with a Gemini capability built from settings."""
    capability = GeminiInsightCapability(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
    )
    return InsightOrchestrator(
        capability=capability,
        timeout_seconds=settings.insight_timeout_seconds,
    )
